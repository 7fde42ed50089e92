"""Error taxonomy shared by the reconciler, the linker and record stores."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from crmrecon.domain.model import RecordType


class ValidationError(ValueError):
    """Raised for missing or invalid input before any store call is made."""


@dataclass(frozen=True, slots=True)
class StoreErrorDetail:
    """One rejected record (or request) inside a failed store operation."""

    message: str
    record_type: RecordType | None = None
    record_id: str | None = None
    status_code: str | None = None
    fields: tuple[str, ...] = ()

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.insert(0, f"[{self.status_code}]")
        if self.fields:
            parts.append(f"(fields: {', '.join(self.fields)})")
        return " ".join(parts)


class StoreError(RuntimeError):
    """Raised when the record store rejects a query or a batch write.

    Batches are all-or-nothing, so a single error describes the whole batch;
    ``details`` lists every record the store complained about.
    """

    def __init__(self, message: str, *, details: Iterable[StoreErrorDetail] = ()) -> None:
        super().__init__(message)
        self.details: tuple[StoreErrorDetail, ...] = tuple(details)

    def __str__(self) -> str:
        base = super().__str__()
        if not self.details:
            return base
        return f"{base}: " + "; ".join(str(detail) for detail in self.details)


class RecordNotFoundError(StoreError):
    """Raised when an update or delete references an unknown (or already deleted) id."""
