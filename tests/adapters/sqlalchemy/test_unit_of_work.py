from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine, inspect

from crmrecon.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)
from crmrecon.domain.model import Account

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def reset_unit_of_work_state() -> Iterator[None]:
    shutdown()
    yield
    shutdown()


def test_sqlalchemy_unit_of_work_requires_startup() -> None:
    with pytest.raises(StartupError):
        SqlAlchemyUnitOfWork()


def test_startup_requires_force_for_reconfiguration() -> None:
    engine_a = create_engine("sqlite+pysqlite:///:memory:", future=True)
    engine_b = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine_a, force=True)

    with pytest.raises(StartupError):
        startup(engine=engine_b)

    startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert is_started()


def test_startup_migrates_the_schema() -> None:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

    startup(engine=engine)

    tables = set(inspect(engine).get_table_names())
    assert {"account", "opportunity", "contact", "lead", "support_case"} <= tables
    assert "alembic_version" in tables


def test_uncommitted_work_is_rolled_back(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.session.add(Account(id="001a", name="Draft"))
        uow.session.flush()

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.session.get(Account, "001a") is None


def test_exception_rolls_back_and_propagates(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with pytest.raises(RuntimeError), SqlAlchemyUnitOfWork() as uow:
        uow.session.add(Account(id="001b", name="Doomed"))
        uow.session.flush()
        raise RuntimeError("boom")

    with SqlAlchemyUnitOfWork() as uow:
        assert uow.session.get(Account, "001b") is None


def test_commit_persists(sqlite_engine: Engine) -> None:
    startup(engine=sqlite_engine, force=True)

    with SqlAlchemyUnitOfWork() as uow:
        uow.session.add(Account(id="001c", name="Kept"))
        uow.commit()

    with SqlAlchemyUnitOfWork() as uow:
        stored = uow.session.get(Account, "001c")
        assert stored is not None
        assert stored.name == "Kept"
