"""Translate between record dataclasses and the REST API's JSON and SOQL."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from crmrecon.domain.model import Record


def api_field_name(record_cls: type[Record], name: str) -> str:
    if name == "id":
        return "Id"
    return record_cls.API_FIELDS[name]


def _to_json_value(value: object) -> object:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def to_payload(
    record: Record,
    *,
    include_id: bool = False,
    skip_none: bool = False,
) -> dict[str, object]:
    """Build the sObject JSON body for ``record``, typed through ``attributes``."""

    payload: dict[str, object] = {"attributes": {"type": str(record.record_type)}}
    if include_id and record.id is not None:
        payload["Id"] = record.id
    for name, api_name in record.API_FIELDS.items():
        value = getattr(record, name)
        if value is None and skip_none:
            continue
        payload[api_name] = _to_json_value(value)
    return payload


def _from_json_value(record_cls: type[Record], name: str, value: object) -> object:
    if value is None:
        return None
    # field annotations are strings under postponed evaluation
    annotation = str(record_cls.__dataclass_fields__[name].type)
    if annotation.startswith("date") and isinstance(value, str):
        return date.fromisoformat(value)
    if annotation.startswith("Decimal") and isinstance(value, int | float | str):
        return Decimal(str(value))
    return value


def from_payload[TRecord: Record](record_cls: type[TRecord], payload: Mapping[str, Any]) -> TRecord:
    """Build a record from a SOQL result row; unknown columns are ignored."""

    values = {
        name: _from_json_value(record_cls, name, payload.get(api_name))
        for name, api_name in record_cls.API_FIELDS.items()
    }
    return record_cls(id=payload.get("Id"), **values)


def soql_literal(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, int | float | Decimal):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_select(
    record_cls: type[Record],
    key_field: str,
    values: Sequence[object],
    *,
    where: Mapping[str, object] | None = None,
) -> str:
    """Return ``SELECT Id, ... FROM Type WHERE key IN (...) [AND field = value ...]``."""

    columns = ", ".join(["Id", *record_cls.API_FIELDS.values()])
    literals = ", ".join(soql_literal(value) for value in values)
    conditions = [f"{api_field_name(record_cls, key_field)} IN ({literals})"]
    conditions.extend(
        f"{api_field_name(record_cls, name)} = {soql_literal(value)}"
        for name, value in (where or {}).items()
    )
    return f"SELECT {columns} FROM {record_cls.RECORD_TYPE} WHERE {' AND '.join(conditions)}"
