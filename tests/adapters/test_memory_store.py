from __future__ import annotations

import pytest

from crmrecon.adapters.batch import ENTITY_IS_DELETED
from crmrecon.adapters.memory import InMemoryRecordStore
from crmrecon.domain.errors import RecordNotFoundError
from crmrecon.domain.identifiers import SequentialIdFactory
from crmrecon.domain.model import Account
from tests.helpers.records import make_accounts


def test_ids_come_from_the_injected_factory() -> None:
    store = InMemoryRecordStore(id_factory=SequentialIdFactory(start=7))
    accounts = make_accounts("Acme", "Globex")

    store.insert(accounts)

    assert [account.id for account in accounts] == ["001000000000000007", "001000000000000008"]


def test_queries_hand_out_snapshots(memory_store: InMemoryRecordStore) -> None:
    (account,) = make_accounts("Acme")
    memory_store.insert([account])

    (found,) = memory_store.query(Account, "name", ["Acme"])
    found.industry = "Retail"
    account.industry = "Energy"

    (again,) = memory_store.query(Account, "name", ["Acme"])
    assert found is not account
    assert again.industry is None


def test_query_keeps_insertion_order(memory_store: InMemoryRecordStore) -> None:
    memory_store.insert(make_accounts("Zeta", "Alpha", "Mid"))

    found = memory_store.query(Account, "name", ["Mid", "Alpha", "Zeta"])

    assert [account.name for account in found] == ["Zeta", "Alpha", "Mid"]


def test_deleted_ids_are_reported_as_deleted(memory_store: InMemoryRecordStore) -> None:
    (account,) = make_accounts("Acme")
    memory_store.insert([account])
    memory_store.delete([account])

    with pytest.raises(RecordNotFoundError) as exc:
        memory_store.update([account])

    assert exc.value.details[0].status_code == ENTITY_IS_DELETED
    assert memory_store.count(Account) == 0


def test_commits_count_only_non_empty_writes(memory_store: InMemoryRecordStore) -> None:
    memory_store.insert([])
    memory_store.upsert([])
    assert memory_store.commits == 0

    memory_store.insert(make_accounts("Acme"))
    assert memory_store.commits == 1
    assert [account.name for account in memory_store.records(Account)] == ["Acme"]


def test_case_insensitive_store_matches_any_casing() -> None:
    store = InMemoryRecordStore(case_insensitive_keys=True)
    store.insert(make_accounts("ACME", "Globex"))

    found = store.query(Account, "name", ["acme"])

    assert [account.name for account in found] == ["ACME"]
    assert store.case_insensitive_keys is True


def test_default_store_matches_exact_casing(memory_store: InMemoryRecordStore) -> None:
    memory_store.insert(make_accounts("ACME"))

    assert memory_store.query(Account, "name", ["acme"]) == []
    assert memory_store.case_insensitive_keys is False
