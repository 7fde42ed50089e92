"""
Base building block:
store-assigned identity plus a natural (business) key.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Self

from crmrecon.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from crmrecon.domain.model.enums import RecordType


@dataclass(eq=False, kw_only=True)
class Record:
    """A typed record of the hosted store.

    ``id`` stays ``None`` until a store assigns it on insert. Subclasses declare
    their natural key, the fields the store requires, and the mapping from
    attribute names to the store's API field names.
    """

    id: str | None = None

    # class-level contract; subclasses must override
    RECORD_TYPE: ClassVar[RecordType]
    KEY_FIELD: ClassVar[str]
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ()
    API_FIELDS: ClassVar[Mapping[str, str]]

    @property
    def record_type(self) -> RecordType:
        return self.RECORD_TYPE

    @property
    def natural_key(self) -> object:
        return getattr(self, self.KEY_FIELD)

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(cls.API_FIELDS)

    @classmethod
    def check_field(cls, name: str) -> None:
        """Raise ``ValidationError`` unless ``name`` is a writable field of this type."""

        if name == "id":
            raise ValidationError(
                f"{cls.RECORD_TYPE}: 'id' is assigned by the store and cannot be set"
            )
        if name not in cls.API_FIELDS:
            raise ValidationError(f"{cls.RECORD_TYPE} has no field {name!r}")

    def apply(self, values: Mapping[str, object]) -> None:
        """Assign ``values`` onto this record; unknown names reject the whole patch."""

        for name in values:
            self.check_field(name)
        for name, value in values.items():
            setattr(self, name, value)

    def field_values(self) -> dict[str, object]:
        return {name: getattr(self, name) for name in self.API_FIELDS}

    def copy(self) -> Self:
        """Return a detached snapshot built through ``__init__`` (safe for mapped classes)."""

        return type(self)(id=self.id, **self.field_values())

    def missing_required_fields(self) -> tuple[str, ...]:
        missing: list[str] = []
        for name in self.REQUIRED_FIELDS:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return tuple(missing)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, {self.KEY_FIELD}={self.natural_key!r})"
