"""Shared batch semantics for record stores that own their own persistence.

Every write runs in two phases inside one transaction: first every record is
checked (required fields, identity, matches), and only when the whole batch is
acceptable are the changes applied. A rejected batch raises one ``StoreError``
and leaves the store untouched.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from crmrecon.domain.errors import RecordNotFoundError, StoreError, StoreErrorDetail
from crmrecon.domain.model import record_class_for
from crmrecon.domain.ports.persistence import WriteResult

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from contextlib import AbstractContextManager

    from crmrecon.domain.identifiers import IdFactory
    from crmrecon.domain.model import Record, RecordType

log = getLogger(__name__)

REQUIRED_FIELD_MISSING = "REQUIRED_FIELD_MISSING"
INVALID_FIELD_FOR_INSERT_UPDATE = "INVALID_FIELD_FOR_INSERT_UPDATE"
MISSING_ID = "MISSING_ARGUMENT"
INVALID_ID_FIELD = "INVALID_ID_FIELD"
ENTITY_IS_DELETED = "ENTITY_IS_DELETED"
DUPLICATE_VALUE = "DUPLICATE_VALUE"
DUPLICATE_EXTERNAL_ID = "DUPLICATE_EXTERNAL_ID"
NOT_FOUND_CODES = frozenset({INVALID_ID_FIELD, ENTITY_IS_DELETED})


class StoreTransaction(Protocol):
    """Primitive operations a backend exposes inside one transaction."""

    def get(self, record_cls: type[Record], record_id: str) -> Record | None: ...

    def is_deleted(self, record_cls: type[Record], record_id: str) -> bool: ...

    def find[TRecord: Record](
        self,
        record_cls: type[TRecord],
        field: str,
        values: Sequence[object],
        *,
        where: Mapping[str, object] | None = None,
        limit: int | None = None,
    ) -> list[TRecord]: ...

    def add(self, record: Record) -> None: ...

    def save(self, record: Record) -> None: ...

    def remove(self, record_cls: type[Record], record_id: str) -> None: ...

    def commit(self) -> None: ...


def check_query_fields(record_cls: type[Record], fields: Sequence[str]) -> None:
    for name in fields:
        if name != "id":
            record_cls.check_field(name)


def missing_field_details(record: Record) -> list[StoreErrorDetail]:
    missing = record.missing_required_fields()
    if not missing:
        return []
    return [
        StoreErrorDetail(
            message="Required fields are missing",
            record_type=record.record_type,
            record_id=record.id,
            status_code=REQUIRED_FIELD_MISSING,
            fields=missing,
        )
    ]


def duplicate_object_details(batch: Sequence[Record]) -> list[StoreErrorDetail]:
    counts = Counter(id(record) for record in batch)
    reported: set[int] = set()
    details: list[StoreErrorDetail] = []
    for record in batch:
        marker = id(record)
        if counts[marker] > 1 and marker not in reported:
            reported.add(marker)
            details.append(
                StoreErrorDetail(
                    message="Record appears more than once in the batch",
                    record_type=record.record_type,
                    record_id=record.id,
                    status_code=DUPLICATE_VALUE,
                )
            )
    return details


def duplicate_id_details(batch: Sequence[Record]) -> list[StoreErrorDetail]:
    counts = Counter(record.id for record in batch if record.id is not None)
    return [
        StoreErrorDetail(
            message="Duplicate id in list",
            record_id=record_id,
            status_code=DUPLICATE_VALUE,
        )
        for record_id, total in counts.items()
        if total > 1
    ]


def missing_id_details(batch: Sequence[Record]) -> list[StoreErrorDetail]:
    return [
        StoreErrorDetail(
            message="Record has no id",
            record_type=record.record_type,
            status_code=MISSING_ID,
        )
        for record in batch
        if record.id is None
    ]


def raise_if_rejected(operation: str, details: Sequence[StoreErrorDetail]) -> None:
    if not details:
        return
    message = f"{operation} rejected for {len(details)} record(s)"
    if all(detail.status_code in NOT_FOUND_CODES for detail in details):
        raise RecordNotFoundError(message, details=details)
    raise StoreError(message, details=details)


def single_record_class(batch: Sequence[Record]) -> type[Record]:
    classes = {type(record) for record in batch}
    if len(classes) != 1:
        names = ", ".join(sorted(cls.__name__ for cls in classes))
        raise StoreError(f"upsert batch must contain a single record type (got: {names})")
    return classes.pop()


class BatchRecordStore(ABC):
    """Template implementing the record store port on top of ``StoreTransaction``."""

    case_insensitive_keys: bool = False

    def __init__(self, *, id_factory: IdFactory) -> None:
        self._id_factory = id_factory

    @abstractmethod
    def _transaction(self) -> AbstractContextManager[StoreTransaction]: ...

    def query[TRecord: Record](
        self,
        record_type: type[TRecord] | RecordType,
        key_field: str,
        values: Sequence[object],
        *,
        where: Mapping[str, object] | None = None,
    ) -> list[TRecord]:
        record_cls = record_class_for(record_type)
        check_query_fields(record_cls, [key_field, *(where or {})])
        distinct = list(dict.fromkeys(values))
        if not distinct:
            return []
        with self._transaction() as tx:
            found = tx.find(record_cls, key_field, distinct, where=where)
        log.debug("Queried %s by %s: %d match(es)", record_cls.RECORD_TYPE, key_field, len(found))
        return found  # type: ignore[return-value]

    def insert(self, records: Sequence[Record]) -> WriteResult:
        batch = list(records)
        if not batch:
            return WriteResult()
        details = duplicate_object_details(batch)
        for record in batch:
            if record.id is not None:
                details.append(
                    StoreErrorDetail(
                        message="Cannot specify an id in an insert call",
                        record_type=record.record_type,
                        record_id=record.id,
                        status_code=INVALID_FIELD_FOR_INSERT_UPDATE,
                    )
                )
            details.extend(missing_field_details(record))
        raise_if_rejected("insert", details)

        with self._assigning_ids(batch) as pending, self._transaction() as tx:
            for record in batch:
                pending.append(record)
                record.id = self._id_factory(record.record_type)
                tx.add(record)
            tx.commit()
        log.debug("Inserted %d record(s)", len(batch))
        return WriteResult(ids=_ids(batch), created=len(batch))

    def update(self, records: Sequence[Record]) -> WriteResult:
        batch = list(records)
        if not batch:
            return WriteResult()
        details = missing_id_details(batch) + duplicate_id_details(batch)
        for record in batch:
            details.extend(missing_field_details(record))
        raise_if_rejected("update", details)

        with self._transaction() as tx:
            raise_if_rejected("update", _unknown_id_details(tx, batch))
            for record in batch:
                tx.save(record)
            tx.commit()
        log.debug("Updated %d record(s)", len(batch))
        return WriteResult(ids=_ids(batch), updated=len(batch))

    def upsert(self, records: Sequence[Record], match_field: str | None = None) -> WriteResult:
        batch = list(records)
        if not batch:
            return WriteResult()
        record_cls = single_record_class(batch)
        by_id = match_field in (None, "id")
        if not by_id:
            record_cls.check_field(match_field or "")
        details = duplicate_object_details(batch) + duplicate_id_details(batch)
        for record in batch:
            details.extend(missing_field_details(record))

        with self._assigning_ids(batch) as pending, self._transaction() as tx:
            if by_id:
                matched_ids = self._match_by_id(tx, record_cls, batch, details)
            else:
                matched_ids = self._match_by_field(
                    tx, record_cls, batch, match_field or "", details
                )
            raise_if_rejected("upsert", details)

            created = 0
            for record in batch:
                pending.append(record)
                existing_id = matched_ids.get(id(record))
                if existing_id is None:
                    record.id = self._id_factory(record.record_type)
                    tx.add(record)
                    created += 1
                else:
                    record.id = existing_id
                    tx.save(record)
            tx.commit()
        log.debug("Upserted %d record(s): created=%d", len(batch), created)
        return WriteResult(ids=_ids(batch), created=created, updated=len(batch) - created)

    def delete(self, records: Sequence[Record]) -> WriteResult:
        batch = list(records)
        if not batch:
            return WriteResult()
        raise_if_rejected("delete", missing_id_details(batch) + duplicate_id_details(batch))

        with self._transaction() as tx:
            raise_if_rejected("delete", _unknown_id_details(tx, batch))
            for record in batch:
                tx.remove(type(record), record.id or "")
            tx.commit()
        log.debug("Deleted %d record(s)", len(batch))
        return WriteResult(ids=_ids(batch), deleted=len(batch))

    def _match_by_id(
        self,
        tx: StoreTransaction,
        record_cls: type[Record],
        batch: Sequence[Record],
        details: list[StoreErrorDetail],
    ) -> dict[int, str]:
        matched: dict[int, str] = {}
        for record in batch:
            if record.id is None:
                continue
            if tx.get(record_cls, record.id) is None:
                details.append(_unknown_id_detail(tx, record))
                continue
            matched[id(record)] = record.id
        return matched

    def _match_by_field(
        self,
        tx: StoreTransaction,
        record_cls: type[Record],
        batch: Sequence[Record],
        match_field: str,
        details: list[StoreErrorDetail],
    ) -> dict[int, str]:
        matched: dict[int, str] = {}
        values = Counter(getattr(record, match_field) for record in batch)
        for record in batch:
            value = getattr(record, match_field)
            if value is None:
                details.append(
                    StoreErrorDetail(
                        message=f"Upsert requires a value for {match_field!r}",
                        record_type=record.record_type,
                        record_id=record.id,
                        status_code=REQUIRED_FIELD_MISSING,
                        fields=(match_field,),
                    )
                )
                continue
            if values[value] > 1:
                details.append(
                    StoreErrorDetail(
                        message=f"Duplicate {match_field} value in list: {value!r}",
                        record_type=record.record_type,
                        record_id=record.id,
                        status_code=DUPLICATE_VALUE,
                        fields=(match_field,),
                    )
                )
                continue
            found = tx.find(record_cls, match_field, [value], limit=2)
            if len(found) > 1:
                details.append(
                    StoreErrorDetail(
                        message=f"More than one record matches {match_field}={value!r}",
                        record_type=record.record_type,
                        status_code=DUPLICATE_EXTERNAL_ID,
                        fields=(match_field,),
                    )
                )
            elif found:
                existing_id = found[0].id or ""
                if record.id is not None and record.id != existing_id:
                    details.append(
                        StoreErrorDetail(
                            message=f"Record id does not match the record found by {match_field}",
                            record_type=record.record_type,
                            record_id=record.id,
                            status_code=INVALID_ID_FIELD,
                        )
                    )
                    continue
                matched[id(record)] = existing_id
            elif record.id is not None:
                details.append(_unknown_id_detail(tx, record))
        return matched

    def _assigning_ids(self, batch: Sequence[Record]) -> _IdRollback:
        return _IdRollback(batch)


class _IdRollback:
    """Restore the ids of touched records when the write does not go through."""

    def __init__(self, batch: Sequence[Record]) -> None:
        self._original = {id(record): record.id for record in batch}
        self._touched: list[Record] = []

    def __enter__(self) -> list[Record]:
        return self._touched

    def __exit__(self, exc_type: object, exc_value: object, traceback: object) -> bool:
        if exc_type is not None:
            for record in self._touched:
                record.id = self._original[id(record)]
        return False


def _ids(batch: Sequence[Record]) -> tuple[str, ...]:
    return tuple(record.id or "" for record in batch)


def _unknown_id_detail(tx: StoreTransaction, record: Record) -> StoreErrorDetail:
    record_id = record.id or ""
    if tx.is_deleted(type(record), record_id):
        return StoreErrorDetail(
            message="Entity is deleted",
            record_type=record.record_type,
            record_id=record_id,
            status_code=ENTITY_IS_DELETED,
        )
    return StoreErrorDetail(
        message="Invalid id",
        record_type=record.record_type,
        record_id=record_id,
        status_code=INVALID_ID_FIELD,
    )


def _unknown_id_details(tx: StoreTransaction, batch: Sequence[Record]) -> list[StoreErrorDetail]:
    return [
        _unknown_id_detail(tx, record)
        for record in batch
        if tx.get(type(record), record.id or "") is None
    ]
