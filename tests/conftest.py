from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002

from crmrecon.adapters.memory import InMemoryRecordStore
from crmrecon.adapters.sqlalchemy import SqlAlchemyRecordStore, start_mappers
from crmrecon.adapters.sqlalchemy.migrations import upgrade_head
from crmrecon.adapters.sqlalchemy.unit_of_work import shutdown, startup
from crmrecon.domain.identifiers import SequentialIdFactory

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Iterator

    from crmrecon.domain.ports.persistence import RecordStore


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_store(sqlite_engine: Engine) -> Iterator[SqlAlchemyRecordStore]:
    startup(engine=sqlite_engine, force=True)
    try:
        yield SqlAlchemyRecordStore(id_factory=SequentialIdFactory())
    finally:
        shutdown()


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture(params=["memory", "sql"])
def record_store(request: pytest.FixtureRequest) -> RecordStore:
    """Every record store backend that runs without network access."""

    fixture_name = "memory_store" if request.param == "memory" else "sqlite_store"
    return request.getfixturevalue(fixture_name)
