"""Find-or-create reconciliation by natural key."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from crmrecon.domain.errors import ValidationError

from .plan import ReconcileDefaults, ReconcileResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from crmrecon.domain.model import Record

log = getLogger(__name__)


def reconcile_by_key[TRecord: Record](
    record_cls: type[TRecord],
    desired_keys: Iterable[str],
    existing_records: Iterable[TRecord],
    defaults: ReconcileDefaults | None = None,
    *,
    key_field: str | None = None,
    casefold: bool = False,
) -> ReconcileResult[TRecord]:
    """Map ``desired_keys`` onto exactly one record per distinct key.

    ``existing_records`` is the store snapshot restricted to the desired keys.
    Keys already present keep their existing record (patched in place with
    ``defaults.on_existing`` when given); missing keys get a freshly constructed
    ``record_cls`` carrying the key and ``defaults.on_create``. When the snapshot
    holds several records under one key the first one wins and the others are
    reported in ``duplicates``.

    Pass ``casefold=True`` when the store matches keys case-insensitively, so
    that ``"acme"`` in the snapshot satisfies a desired ``"Acme"``.

    Raises ``ValidationError`` before constructing anything if a desired key is
    empty or the defaults try to set identity or the key field.
    """

    field_name = key_field or record_cls.KEY_FIELD
    record_cls.check_field(field_name)
    effective = defaults or ReconcileDefaults()
    _check_defaults(record_cls, effective, field_name)
    keys = _distinct_keys(desired_keys, record_cls, casefold=casefold)

    result: ReconcileResult[TRecord] = ReconcileResult()
    for record in existing_records:
        key = _match_key(getattr(record, field_name), casefold=casefold)
        if key in result.by_key:
            result.duplicates.append(record)
            continue
        result.by_key[key] = record
        result.records.append(record)

    for match, key in keys.items():
        existing = result.by_key.get(match)
        if existing is not None:
            if effective.on_existing:
                existing.apply(effective.on_existing)
                result.patched.append(existing)
            continue
        record = record_cls(**{field_name: key})
        record.apply(effective.on_create)
        result.by_key[match] = record
        result.records.append(record)
        result.created.append(record)

    if result.duplicates:
        log.warning(
            "%s snapshot holds %d duplicate record(s) by %s; kept the first of each",
            record_cls.RECORD_TYPE,
            len(result.duplicates),
            field_name,
        )
    log.debug(
        "Reconciled %s by %s: desired=%d, existing=%d, created=%d, patched=%d",
        record_cls.RECORD_TYPE,
        field_name,
        len(keys),
        len(result.records) - len(result.created),
        len(result.created),
        len(result.patched),
    )
    return result


def _distinct_keys(
    desired_keys: Iterable[str],
    record_cls: type[Record],
    *,
    casefold: bool,
) -> dict[object, str]:
    """Validate every key up front and collapse duplicates, preserving first-seen order."""

    distinct: dict[object, str] = {}
    for position, key in enumerate(desired_keys):
        if not isinstance(key, str) or not key.strip():
            raise ValidationError(
                f"{record_cls.RECORD_TYPE} key at position {position} is empty: {key!r}"
            )
        distinct.setdefault(_match_key(key, casefold=casefold), key)
    return distinct


def distinct_keys(
    record_cls: type[Record],
    desired_keys: Iterable[str],
    *,
    casefold: bool = False,
) -> list[str]:
    """Validate ``desired_keys`` and return them without duplicates, in first-seen order.

    Call this before querying the store so that bad input never reaches it.
    """

    return list(_distinct_keys(desired_keys, record_cls, casefold=casefold).values())


def _match_key(value: object, *, casefold: bool) -> object:
    if casefold and isinstance(value, str):
        return value.casefold()
    return value


def _check_defaults(
    record_cls: type[Record],
    defaults: ReconcileDefaults,
    field_name: str,
) -> None:
    for patch in (defaults.on_create, defaults.on_existing or {}):
        for name in patch:
            record_cls.check_field(name)
            if name == field_name:
                raise ValidationError(
                    f"{record_cls.RECORD_TYPE} defaults cannot set the key field {field_name!r}"
                )
