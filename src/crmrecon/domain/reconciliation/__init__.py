"""Find-or-create reconciliation of desired records against a store snapshot.

Flow used by the application services:
1) query the store for records sharing the desired natural keys
2) reconcile in memory (pure, no store calls)
3) write the pending records in one batch
"""

from __future__ import annotations

from .linker import link_contacts
from .plan import LinkResult, ReconcileDefaults, ReconcileResult
from .reconcile import distinct_keys, reconcile_by_key

__all__ = [
    "LinkResult",
    "ReconcileDefaults",
    "ReconcileResult",
    "distinct_keys",
    "link_contacts",
    "reconcile_by_key",
]
