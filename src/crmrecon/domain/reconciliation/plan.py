"""Result types shared by the reconciler, the linker and the application services.

The reconciler is a pure function: it only describes which records exist,
which were patched and which must be created. Persisting them is the caller's
job, using exactly one write against the record store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from crmrecon.domain.model import Account, Contact, Record


@dataclass(slots=True, frozen=True, kw_only=True)
class ReconcileDefaults:
    """Field patches applied while reconciling.

    ``on_create`` populates newly constructed records. ``on_existing`` (when not
    ``None``) patches records already present in the store; without it existing
    records are left untouched.
    """

    on_create: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))
    on_existing: Mapping[str, object] | None = None


@dataclass(slots=True)
class ReconcileResult[TRecord: Record]:
    """One record per natural key, plus a breakdown of how each got there."""

    records: list[TRecord] = field(default_factory=list)
    created: list[TRecord] = field(default_factory=list)
    patched: list[TRecord] = field(default_factory=list)
    duplicates: list[TRecord] = field(default_factory=list)
    by_key: dict[object, TRecord] = field(default_factory=dict)

    @property
    def pending(self) -> list[TRecord]:
        """Records that need a write: patched existing ones, then new ones."""
        return [*self.patched, *self.created]

    @property
    def unchanged(self) -> list[TRecord]:
        touched = {id(record) for record in self.pending}
        return [record for record in self.records if id(record) not in touched]

    @property
    def has_changes(self) -> bool:
        return bool(self.created or self.patched)

    def __len__(self) -> int:
        return len(self.records)


@dataclass(slots=True)
class LinkResult:
    """Contacts associated with an account, and contacts left out of the batch."""

    linked: list[Contact] = field(default_factory=list)
    skipped: list[Contact] = field(default_factory=list)
    accounts: list[Account] = field(default_factory=list)
