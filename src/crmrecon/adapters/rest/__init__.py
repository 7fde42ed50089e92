"""Public interface for the hosted CRM REST adapter."""

from __future__ import annotations

from .client import RestRecordStore
from .schema import ApiError, QueryResponse, SaveResult
from .translator import build_select, from_payload, soql_literal, to_payload

__all__ = [
    "ApiError",
    "QueryResponse",
    "RestRecordStore",
    "SaveResult",
    "build_select",
    "from_payload",
    "soql_literal",
    "to_payload",
]
