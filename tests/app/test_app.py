from __future__ import annotations

from datetime import date

import pytest

from crmrecon.adapters.memory import InMemoryRecordStore
from crmrecon.adapters.rest import RestRecordStore
from crmrecon.adapters.sqlalchemy import SqlAlchemyRecordStore, shutdown
from crmrecon.app import (
    build_record_store,
    create_account,
    create_and_discard_cases,
    create_and_discard_leads,
    find_or_create_accounts,
    find_or_create_opportunities,
    link_contacts_to_accounts,
    update_record_field,
)
from crmrecon.domain.errors import StoreError, ValidationError
from crmrecon.domain.identifiers import sequential_names
from crmrecon.domain.model import Account, Case, Contact, Lead, Opportunity
from crmrecon.domain.ports.persistence import RecordStore
from crmrecon.domain.reconciliation import ReconcileDefaults
from tests.helpers.records import CallRecordingStore, make_accounts, make_contacts


@pytest.fixture
def recording_store(memory_store: InMemoryRecordStore) -> CallRecordingStore:
    return CallRecordingStore(memory_store)


def test_find_or_create_accounts_writes_missing_accounts_once(
    recording_store: CallRecordingStore,
    memory_store: InMemoryRecordStore,
) -> None:
    memory_store.insert(make_accounts("Acme"))

    result = find_or_create_accounts(
        recording_store,
        ["Acme", "Globex", "Acme"],
        defaults=ReconcileDefaults(on_create={"industry": "Retail"}),
    )

    assert [account.name for account in result.records] == ["Acme", "Globex"]
    assert [account.name for account in result.created] == ["Globex"]
    assert result.created[0].id is not None
    assert recording_store.calls == [("query", 2), ("upsert", 1)]
    assert memory_store.count(Account) == 2


def test_find_or_create_accounts_is_idempotent(recording_store: CallRecordingStore) -> None:
    find_or_create_accounts(recording_store, ["Acme", "Globex"])
    recording_store.calls.clear()

    again = find_or_create_accounts(recording_store, ["Globex", "Acme"])

    assert again.created == []
    assert recording_store.writes == []


def test_empty_desired_list_makes_no_writes(
    recording_store: CallRecordingStore,
    memory_store: InMemoryRecordStore,
) -> None:
    result = find_or_create_accounts(recording_store, [])

    assert result.records == []
    assert recording_store.writes == []
    assert memory_store.commits == 0


def test_blank_names_are_rejected_before_any_store_call(
    recording_store: CallRecordingStore,
) -> None:
    with pytest.raises(ValidationError):
        find_or_create_accounts(recording_store, ["Acme", ""])

    assert recording_store.calls == []


def test_opportunities_are_scoped_to_their_account(memory_store: InMemoryRecordStore) -> None:
    first = create_account(memory_store, "First")
    second = create_account(memory_store, "Second")
    find_or_create_opportunities(memory_store, first, ["Renewal"], today=lambda: date(2024, 1, 1))

    result = find_or_create_opportunities(
        memory_store,
        second,
        ["Renewal", "Renewal", "Upsell"],
        today=lambda: date(2024, 5, 17),
    )

    assert [opportunity.name for opportunity in result.created] == ["Renewal", "Upsell"]
    assert all(opportunity.account_id == second.id for opportunity in result.records)
    assert all(opportunity.stage_name == "Prospecting" for opportunity in result.records)
    assert all(opportunity.close_date == date(2024, 5, 17) for opportunity in result.records)
    assert memory_store.count(Opportunity) == 3


def test_opportunities_need_a_persisted_account(memory_store: InMemoryRecordStore) -> None:
    with pytest.raises(ValidationError):
        find_or_create_opportunities(memory_store, Account(name="Draft"), ["Renewal"])


def test_contacts_without_accounts_get_new_accounts_and_are_linked(
    record_store: RecordStore,
) -> None:
    store = CallRecordingStore(record_store)
    doe, jane = make_contacts("Doe", "Jane")

    result = link_contacts_to_accounts(store, [doe, jane])

    accounts = record_store.query(Account, "name", ["Doe", "Jane"])
    ids_by_name = {account.name: account.id for account in accounts}
    assert len(accounts) == 2
    assert doe.account_id == ids_by_name["Doe"]
    assert jane.account_id == ids_by_name["Jane"]
    assert result.linked == [doe, jane]
    assert result.skipped == []
    assert store.writes == [("upsert", 2), ("upsert", 2)]
    stored = record_store.query(Contact, "last_name", ["Doe", "Jane"])
    assert {contact.account_id for contact in stored} == set(ids_by_name.values())


def test_linking_reuses_existing_accounts(memory_store: InMemoryRecordStore) -> None:
    existing = create_account(memory_store, "Doe")
    (doe,) = make_contacts("Doe")

    link_contacts_to_accounts(memory_store, [doe])

    assert doe.account_id == existing.id
    assert memory_store.count(Account) == 1


def test_update_record_field(record_store: RecordStore) -> None:
    account = create_account(record_store, "Acme", industry="Retail")

    result = update_record_field(record_store, account, "industry", "Energy")

    assert result.updated == 1
    assert account.industry == "Energy"
    (stored,) = record_store.query(Account, "name", ["Acme"])
    assert stored.industry == "Energy"


def test_rejected_update_leaves_the_record_untouched(memory_store: InMemoryRecordStore) -> None:
    ghost = Account(id="001MISSING", name="Ghost", industry="Retail")

    with pytest.raises(StoreError):
        update_record_field(memory_store, ghost, "industry", "Energy")

    assert ghost.industry == "Retail"


def test_update_record_field_requires_a_persisted_record(
    recording_store: CallRecordingStore,
) -> None:
    with pytest.raises(ValidationError):
        update_record_field(recording_store, Account(name="Acme"), "industry", "Energy")

    assert recording_store.calls == []


def test_leads_are_created_and_discarded(
    recording_store: CallRecordingStore,
    memory_store: InMemoryRecordStore,
) -> None:
    result = create_and_discard_leads(
        recording_store,
        3,
        company="Acme",
        name_factory=sequential_names("Prospect"),
    )

    assert result.deleted == 3
    assert recording_store.calls == [("insert", 3), ("delete", 3)]
    assert memory_store.count(Lead) == 0


def test_cases_are_created_and_discarded(record_store: RecordStore) -> None:
    result = create_and_discard_cases(record_store, ["Printer on fire", "Login broken"])

    assert result.deleted == 2
    assert record_store.query(Case, "subject", ["Printer on fire", "Login broken"]) == []


def test_build_record_store_selects_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CRMRECON_STORE_BACKEND", "memory")
    assert isinstance(build_record_store(), InMemoryRecordStore)

    monkeypatch.setenv("CRM_INSTANCE_URL", "https://acme.my.crm.test")
    monkeypatch.setenv("CRM_ACCESS_TOKEN", "secret")
    assert isinstance(build_record_store("rest"), RestRecordStore)

    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    shutdown()
    try:
        assert isinstance(build_record_store("sql"), SqlAlchemyRecordStore)
    finally:
        shutdown()


@pytest.fixture
def case_insensitive_store() -> InMemoryRecordStore:
    return InMemoryRecordStore(case_insensitive_keys=True)


def test_accounts_match_the_way_the_store_compares_names(
    case_insensitive_store: InMemoryRecordStore,
) -> None:
    (acme,) = case_insensitive_store.insert(make_accounts("ACME")).ids

    result = find_or_create_accounts(case_insensitive_store, ["Acme", "acme"])

    assert result.created == []
    assert [account.id for account in result.records] == [acme]
    assert case_insensitive_store.count(Account) == 1


def test_explicit_casefold_overrides_the_store(
    case_insensitive_store: InMemoryRecordStore,
) -> None:
    case_insensitive_store.insert(make_accounts("ACME"))

    result = find_or_create_accounts(case_insensitive_store, ["Acme"], casefold=False)

    assert [account.name for account in result.created] == ["Acme"]


def test_opportunities_match_the_way_the_store_compares_names(
    case_insensitive_store: InMemoryRecordStore,
) -> None:
    account = create_account(case_insensitive_store, "Acme")
    find_or_create_opportunities(
        case_insensitive_store, account, ["Renewal"], today=lambda: date(2024, 1, 1)
    )

    again = find_or_create_opportunities(
        case_insensitive_store, account, ["RENEWAL"], today=lambda: date(2024, 1, 1)
    )

    assert again.created == []
    assert case_insensitive_store.count(Opportunity) == 1


def test_linking_matches_the_way_the_store_compares_names(
    case_insensitive_store: InMemoryRecordStore,
) -> None:
    existing = create_account(case_insensitive_store, "DOE")
    doe, lower_doe = make_contacts("Doe", "doe")

    result = link_contacts_to_accounts(case_insensitive_store, [doe, lower_doe])

    assert result.skipped == []
    assert doe.account_id == existing.id
    assert lower_doe.account_id == existing.id
    assert case_insensitive_store.count(Account) == 1
