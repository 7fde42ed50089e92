"""Application entry points: the demo record operations wired to a record store.

Each function is a standalone use case. Reconciling services follow the same
shape: validate input, query the store once, reconcile in memory, then write
the pending records in a single batch.
"""

from __future__ import annotations

from datetime import date
from logging import getLogger
from typing import TYPE_CHECKING

from crmrecon.adapters.memory import InMemoryRecordStore
from crmrecon.adapters.rest import RestRecordStore
from crmrecon.adapters.sqlalchemy import SqlAlchemyRecordStore, is_started, startup
from crmrecon.config import StoreBackend, get_store_backend
from crmrecon.domain.errors import ValidationError
from crmrecon.domain.identifiers import random_names
from crmrecon.domain.model import (
    Account,
    Case,
    CaseStatus,
    Contact,
    Lead,
    LeadStatus,
    Opportunity,
    OpportunityStage,
)
from crmrecon.domain.ports.persistence import WriteResult
from crmrecon.domain.reconciliation import (
    LinkResult,
    ReconcileDefaults,
    ReconcileResult,
    distinct_keys,
    link_contacts,
    reconcile_by_key,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from crmrecon.domain.identifiers import NameFactory
    from crmrecon.domain.model import Record
    from crmrecon.domain.ports.persistence import RecordStore

log = getLogger(__name__)


def create_account(
    store: RecordStore,
    name: str,
    *,
    description: str | None = None,
    industry: str | None = None,
) -> Account:
    """Insert a single account and return it with its store-assigned id."""

    if not name.strip():
        raise ValidationError("Account name must not be empty")
    account = Account(name=name, description=description, industry=industry)
    store.insert([account])
    log.info(f"Created account {name!r} with id {account.id}")
    return account


def update_record_field(
    store: RecordStore,
    record: Record,
    field: str,
    value: object,
) -> WriteResult:
    """Patch one field of a persisted record and write it back.

    ``record`` only takes the new value once the store accepted it.
    """

    if record.id is None:
        raise ValidationError(f"{record.record_type} must be persisted before it can be updated")
    patched = record.copy()
    patched.apply({field: value})
    result = store.update([patched])
    record.apply({field: value})
    log.info(f"Updated {record.record_type} {record.id}: {field}={value!r}")
    return result


def find_or_create_accounts(
    store: RecordStore,
    names: Iterable[str],
    *,
    defaults: ReconcileDefaults | None = None,
    casefold: bool | None = None,
) -> ReconcileResult[Account]:
    """Return one account per distinct name, creating the missing ones in a single upsert.

    Names match the way ``store`` compares keys unless ``casefold`` says otherwise.
    """

    casefold = store.case_insensitive_keys if casefold is None else casefold
    keys = distinct_keys(Account, names, casefold=casefold)
    log.info(f"Finding or creating {len(keys)} account(s)")
    existing = store.query(Account, Account.KEY_FIELD, keys)
    result = reconcile_by_key(Account, keys, existing, defaults, casefold=casefold)
    _write_pending(store, result)
    log.info(
        f"Accounts reconciled: total={len(result)}, created={len(result.created)}, "
        f"patched={len(result.patched)}"
    )
    return result


def find_or_create_opportunities(
    store: RecordStore,
    account: Account,
    names: Iterable[str],
    *,
    stage_name: str = OpportunityStage.PROSPECTING.value,
    close_date: date | None = None,
    today: Callable[[], date] = date.today,
) -> ReconcileResult[Opportunity]:
    """Find or create opportunities by name within ``account``.

    New opportunities start in ``stage_name`` and close on ``close_date``
    (defaulting to ``today()``).
    """

    if account.id is None:
        raise ValidationError(f"Account {account.name!r} must be persisted first")
    casefold = store.case_insensitive_keys
    keys = distinct_keys(Opportunity, names, casefold=casefold)
    log.info(f"Finding or creating {len(keys)} opportunit(y/ies) for account {account.id}")
    existing = store.query(
        Opportunity,
        Opportunity.KEY_FIELD,
        keys,
        where={"account_id": account.id},
    )
    defaults = ReconcileDefaults(
        on_create={
            "stage_name": stage_name,
            "close_date": close_date or today(),
            "account_id": account.id,
        }
    )
    result = reconcile_by_key(Opportunity, keys, existing, defaults, casefold=casefold)
    _write_pending(store, result)
    log.info(f"Opportunities reconciled: total={len(result)}, created={len(result.created)}")
    return result


def link_contacts_to_accounts(store: RecordStore, contacts: Sequence[Contact]) -> LinkResult:
    """Attach each contact to the account named like its last name, creating missing accounts.

    Two writes at most: one upsert for the accounts, one for the linked contacts.
    Contacts that could not be linked are returned in ``skipped`` and not written.
    """

    casefold = store.case_insensitive_keys
    names = distinct_keys(
        Account, [contact.last_name or "" for contact in contacts], casefold=casefold
    )
    log.info(f"Linking {len(contacts)} contact(s) against {len(names)} account name(s)")
    existing = store.query(Account, Account.KEY_FIELD, names)
    accounts = reconcile_by_key(Account, names, existing, casefold=casefold)
    _write_pending(store, accounts)

    result = link_contacts(contacts, accounts.records, casefold=casefold)
    if result.linked:
        store.upsert(result.linked)
    log.info(
        f"Linked {len(result.linked)} contact(s); created {len(accounts.created)} account(s); "
        f"skipped {len(result.skipped)}"
    )
    return result


def insert_then_delete(store: RecordStore, records: Sequence[Record]) -> WriteResult:
    """Insert ``records`` and delete them again; returns the delete result."""

    batch = list(records)
    if not batch:
        return WriteResult()
    inserted = store.insert(batch)
    log.info(f"Inserted {inserted.created} ephemeral record(s)")
    deleted = store.delete(batch)
    log.info(f"Deleted {deleted.deleted} ephemeral record(s)")
    return deleted


def create_and_discard_leads(
    store: RecordStore,
    count: int,
    *,
    company: str,
    name_factory: NameFactory | None = None,
    status: str = LeadStatus.OPEN.value,
) -> WriteResult:
    if count < 0:
        raise ValidationError(f"Lead count must not be negative (got {count})")
    names = name_factory or random_names("Lead")
    leads = [Lead(last_name=names(), company=company, status=status) for _ in range(count)]
    return insert_then_delete(store, leads)


def create_and_discard_cases(
    store: RecordStore,
    subjects: Iterable[str],
    *,
    status: str = CaseStatus.NEW.value,
    origin: str | None = None,
) -> WriteResult:
    cases = [Case(subject=subject, status=status, origin=origin) for subject in subjects]
    return insert_then_delete(store, cases)


def build_record_store(backend: StoreBackend | str | None = None) -> RecordStore:
    """Return the record store selected by ``backend`` or ``CRMRECON_STORE_BACKEND``."""

    selected = StoreBackend(backend) if backend is not None else get_store_backend()
    log.info(f"Using {selected} record store")
    if selected is StoreBackend.MEMORY:
        return InMemoryRecordStore()
    if selected is StoreBackend.REST:
        return RestRecordStore()
    if not is_started():
        startup()
    return SqlAlchemyRecordStore()


def _write_pending[TRecord: Record](store: RecordStore, result: ReconcileResult[TRecord]) -> None:
    if result.pending:
        store.upsert(result.pending)
