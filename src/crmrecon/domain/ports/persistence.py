"""Port for the hosted record store.

Every batch write is all-or-nothing: either every record in the batch is
persisted, or the store raises a single ``StoreError`` and nothing changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from crmrecon.domain.model import Record, RecordType


@dataclass(slots=True, frozen=True)
class WriteResult:
    """Outcome of one batch write."""

    ids: tuple[str, ...] = ()
    created: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def written(self) -> int:
        return self.created + self.updated + self.deleted


@runtime_checkable
class RecordStore(Protocol):
    """Persistence contract for CRM records, addressable by id and queryable by field."""

    # True when text keys compare case-insensitively on query and upsert
    case_insensitive_keys: bool

    def query[TRecord: Record](
        self,
        record_type: type[TRecord] | RecordType,
        key_field: str,
        values: Sequence[object],
        *,
        where: Mapping[str, object] | None = None,
    ) -> list[TRecord]:
        """Return every record whose ``key_field`` is one of ``values``."""
        ...

    def insert(self, records: Sequence[Record]) -> WriteResult:
        """Insert new records, assigning ``id`` on each in place."""
        ...

    def update(self, records: Sequence[Record]) -> WriteResult:
        """Persist field changes of existing records, matched by ``id``."""
        ...

    def upsert(self, records: Sequence[Record], match_field: str | None = None) -> WriteResult:
        """Insert records that do not exist yet and update those that do."""
        ...

    def delete(self, records: Sequence[Record]) -> WriteResult:
        """Remove records by ``id``."""
        ...
