"""In-process record store with snapshot semantics.

Queries hand out copies and writes persist copies, so mutating a record
in memory never changes the store until it is written back, the same as with
a hosted store.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from crmrecon.adapters.batch import BatchRecordStore
from crmrecon.domain.identifiers import SequentialIdFactory

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping, Sequence

    from crmrecon.domain.identifiers import IdFactory
    from crmrecon.domain.model import Record, RecordType


class InMemoryRecordStore(BatchRecordStore):
    def __init__(
        self,
        *,
        id_factory: IdFactory | None = None,
        case_insensitive_keys: bool = False,
    ) -> None:
        super().__init__(id_factory=id_factory or SequentialIdFactory())
        self.case_insensitive_keys = case_insensitive_keys
        self._tables: dict[RecordType, dict[str, Record]] = {}
        self._deleted: set[str] = set()
        self.commits = 0

    def records[TRecord: Record](self, record_cls: type[TRecord]) -> list[TRecord]:
        """Return copies of every stored record of ``record_cls`` in insertion order."""

        table = self._tables.get(record_cls.RECORD_TYPE, {})
        return [row.copy() for row in table.values()]  # type: ignore[misc]

    def count(self, record_cls: type[Record]) -> int:
        return len(self._tables.get(record_cls.RECORD_TYPE, {}))

    def match_key(self, value: object) -> object:
        if self.case_insensitive_keys and isinstance(value, str):
            return value.casefold()
        return value

    @contextmanager
    def _transaction(self) -> Iterator[_MemoryTransaction]:
        yield _MemoryTransaction(self)

    def _table(self, record_type: RecordType) -> dict[str, Record]:
        return self._tables.setdefault(record_type, {})


class _MemoryTransaction:
    """Writes go straight to the tables; batches are validated before the first write."""

    def __init__(self, store: InMemoryRecordStore) -> None:
        self._store = store

    def get(self, record_cls: type[Record], record_id: str) -> Record | None:
        return self._store._table(record_cls.RECORD_TYPE).get(record_id)  # noqa: SLF001

    def is_deleted(self, record_cls: type[Record], record_id: str) -> bool:
        _ = record_cls
        return record_id in self._store._deleted  # noqa: SLF001

    def find[TRecord: Record](
        self,
        record_cls: type[TRecord],
        field: str,
        values: Sequence[object],
        *,
        where: Mapping[str, object] | None = None,
        limit: int | None = None,
    ) -> list[TRecord]:
        match = self._store.match_key
        wanted = {match(value) for value in values}
        conditions = dict(where or {})
        found: list[TRecord] = []
        for row in self._store._table(record_cls.RECORD_TYPE).values():  # noqa: SLF001
            if match(getattr(row, field)) not in wanted:
                continue
            if any(getattr(row, name) != value for name, value in conditions.items()):
                continue
            found.append(row.copy())  # type: ignore[arg-type]
            if limit is not None and len(found) >= limit:
                break
        return found

    def add(self, record: Record) -> None:
        self._store._table(record.record_type)[record.id or ""] = record.copy()  # noqa: SLF001

    def save(self, record: Record) -> None:
        self._store._table(record.record_type)[record.id or ""] = record.copy()  # noqa: SLF001

    def remove(self, record_cls: type[Record], record_id: str) -> None:
        del self._store._table(record_cls.RECORD_TYPE)[record_id]  # noqa: SLF001
        self._store._deleted.add(record_id)  # noqa: SLF001

    def commit(self) -> None:
        self._store.commits += 1


if TYPE_CHECKING:
    from crmrecon.domain.ports.persistence import RecordStore

    _store_check: RecordStore = InMemoryRecordStore()
