"""Record store backed by a relational database through SQLAlchemy sessions."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from crmrecon.adapters.batch import BatchRecordStore
from crmrecon.adapters.sqlalchemy.mappings import TABLE_BY_RECORD_TYPE
from crmrecon.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    is_started,
)
from crmrecon.domain.errors import StoreError
from crmrecon.domain.identifiers import random_id

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from sqlalchemy.orm import Session

    from crmrecon.domain.identifiers import IdFactory
    from crmrecon.domain.model import Record

UnitOfWorkFactory = Callable[[], SqlAlchemyUnitOfWork]

log = getLogger(__name__)


class SqlAlchemyRecordStore(BatchRecordStore):
    """Each store operation runs in its own unit of work; a failed batch rolls back whole."""

    def __init__(
        self,
        *,
        id_factory: IdFactory | None = None,
        unit_of_work_factory: UnitOfWorkFactory | None = None,
    ) -> None:
        if unit_of_work_factory is None and not is_started():
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call startup() before creating a store."
            )
        super().__init__(id_factory=id_factory or random_id)
        self._unit_of_work_factory = unit_of_work_factory or SqlAlchemyUnitOfWork

    @contextmanager
    def _transaction(self) -> Iterator[_SqlAlchemyTransaction]:
        try:
            with self._unit_of_work_factory() as uow:
                yield _SqlAlchemyTransaction(uow)
        except SQLAlchemyError as exc:
            log.error(f"Database rejected the operation: {exc}")
            raise StoreError(f"Database rejected the operation: {exc}") from exc


class _SqlAlchemyTransaction:
    def __init__(self, uow: SqlAlchemyUnitOfWork) -> None:
        self._uow = uow

    @property
    def session(self) -> Session:
        return self._uow.session

    def get(self, record_cls: type[Record], record_id: str) -> Record | None:
        return self.session.get(record_cls, record_id)

    def is_deleted(self, record_cls: type[Record], record_id: str) -> bool:
        # deleted rows leave no tombstone
        _ = record_cls, record_id
        return False

    def find[TRecord: Record](
        self,
        record_cls: type[TRecord],
        field: str,
        values: Sequence[object],
        *,
        where: Mapping[str, object] | None = None,
        limit: int | None = None,
    ) -> list[TRecord]:
        table = TABLE_BY_RECORD_TYPE[record_cls.RECORD_TYPE]
        stmt = select(record_cls).where(table.c[field].in_(list(values)))
        for name, value in (where or {}).items():
            stmt = stmt.where(table.c[name] == value)
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.session.scalars(stmt).all())

    def add(self, record: Record) -> None:
        self.session.add(record.copy())

    def save(self, record: Record) -> None:
        persistent = self.session.get(type(record), record.id)
        if persistent is None:
            raise StoreError(f"{record.record_type} {record.id} disappeared during the update")
        persistent.apply(record.field_values())

    def remove(self, record_cls: type[Record], record_id: str) -> None:
        persistent = self.session.get(record_cls, record_id)
        if persistent is not None:
            self.session.delete(persistent)

    def commit(self) -> None:
        self._uow.commit()


if TYPE_CHECKING:
    from crmrecon.domain.ports.persistence import RecordStore

    _store_check: RecordStore = SqlAlchemyRecordStore()
