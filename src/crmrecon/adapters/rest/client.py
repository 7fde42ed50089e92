"""Record store backed by the hosted CRM REST API.

Queries are SOQL; writes go through the sObject Collections endpoints with
``allOrNone``. A batch larger than one collection is sent as the subrequests
of a single ``/composite`` call with ``allOrNone``, so every batch write either
succeeds whole or changes nothing.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError as PayloadValidationError

from crmrecon.adapters.batch import (
    INVALID_FIELD_FOR_INSERT_UPDATE,
    check_query_fields,
    duplicate_id_details,
    duplicate_object_details,
    missing_id_details,
    raise_if_rejected,
    single_record_class,
)
from crmrecon.adapters.http_resilience import ResilienceConfig, ResilientClient
from crmrecon.config import (
    CRM_COLLECTION_LIMIT,
    CRM_COMPOSITE_LIMIT,
    CrmApiConfig,
    get_crm_api_config,
)
from crmrecon.domain.errors import StoreError, StoreErrorDetail
from crmrecon.domain.model import record_class_for
from crmrecon.domain.ports.persistence import WriteResult

from .schema import API_ERRORS, SAVE_RESULTS, CompositeResponse, QueryResponse, SaveResult
from .translator import api_field_name, build_select, from_payload, to_payload

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from crmrecon.domain.model import Record, RecordType

log = getLogger(__name__)

ROLLED_BACK = "ALL_OR_NONE_OPERATION_ROLLED_BACK"
PROCESSING_HALTED = "PROCESSING_HALTED"


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True, frozen=True)
class _ChunkRequest:
    """One sObject Collections call covering ``records``."""

    method: str
    path: str
    records: Sequence[Record]
    params: Mapping[str, str] | None = None
    body: Mapping[str, object] | None = None

    def subrequest(self, reference_id: str) -> dict[str, object]:
        url = self.path if not self.params else f"{self.path}?{httpx.QueryParams(self.params)}"
        subrequest: dict[str, object] = {
            "method": self.method,
            "url": url,
            "referenceId": reference_id,
        }
        if self.body is not None:
            subrequest["body"] = self.body
        return subrequest


@dataclass(slots=True)
class RestRecordStore:
    config: CrmApiConfig = field(default_factory=get_crm_api_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    chunk_size: int = CRM_COLLECTION_LIMIT
    # SOQL compares text case-insensitively
    case_insensitive_keys: bool = True

    # Record store port -------------------------------------------------------

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
        found = asyncio.run(self._query_async(record_cls, key_field, distinct, where))
        log.debug("Queried %s by %s: %d match(es)", record_cls.RECORD_TYPE, key_field, len(found))
        return found  # type: ignore[return-value]

    def insert(self, records: Sequence[Record]) -> WriteResult:
        batch = list(records)
        if not batch:
            return WriteResult()
        details = duplicate_object_details(batch)
        details.extend(
            StoreErrorDetail(
                message="Cannot specify an id in an insert call",
                record_type=record.record_type,
                record_id=record.id,
                status_code=INVALID_FIELD_FOR_INSERT_UPDATE,
            )
            for record in batch
            if record.id is not None
        )
        raise_if_rejected("insert", details)

        requests = self._save_requests(
            "insert", "POST", self._collections_path(), batch, skip_none=True
        )
        self._write("insert", requests)
        log.debug("Inserted %d record(s)", len(batch))
        return WriteResult(ids=_ids(batch), created=len(batch))

    def update(self, records: Sequence[Record]) -> WriteResult:
        batch = list(records)
        if not batch:
            return WriteResult()
        raise_if_rejected("update", missing_id_details(batch) + duplicate_id_details(batch))

        requests = self._save_requests(
            "update", "PATCH", self._collections_path(), batch, include_id=True
        )
        self._write("update", requests)
        log.debug("Updated %d record(s)", len(batch))
        return WriteResult(ids=_ids(batch), updated=len(batch))

    def upsert(self, records: Sequence[Record], match_field: str | None = None) -> WriteResult:
        """Upsert through ``/composite/sobjects/{Type}/{Field}``.

        Matching on a field other than ``id`` requires the field to be an
        external id on the hosted side; the API rejects the batch otherwise.
        """

        batch = list(records)
        if not batch:
            return WriteResult()
        record_cls = single_record_class(batch)
        by_id = match_field in (None, "id")
        if not by_id:
            record_cls.check_field(match_field or "")
        raise_if_rejected("upsert", duplicate_object_details(batch) + duplicate_id_details(batch))

        match_api_name = api_field_name(record_cls, "id" if by_id else match_field or "")
        path = f"{self._collections_path()}/{record_cls.RECORD_TYPE}/{match_api_name}"
        requests = self._save_requests("upsert", "PATCH", path, batch, include_id=by_id)
        results = self._write("upsert", requests)
        created = sum(1 for result in results if result.created)
        log.debug("Upserted %d record(s): created=%d", len(batch), created)
        return WriteResult(ids=_ids(batch), created=created, updated=len(batch) - created)

    def delete(self, records: Sequence[Record]) -> WriteResult:
        batch = list(records)
        if not batch:
            return WriteResult()
        raise_if_rejected("delete", missing_id_details(batch) + duplicate_id_details(batch))

        requests = [
            _ChunkRequest(
                "DELETE",
                self._collections_path(),
                chunk,
                params={"ids": ",".join(record.id or "" for record in chunk), "allOrNone": "true"},
            )
            for chunk in self._chunks("delete", batch)
        ]
        self._write("delete", requests, assign_ids=False)
        log.debug("Deleted %d record(s)", len(batch))
        return WriteResult(ids=_ids(batch), deleted=len(batch))

    # Batching ----------------------------------------------------------------

    def _chunks(self, operation: str, batch: Sequence[Record]) -> list[tuple[Record, ...]]:
        chunks = list(batched(batch, self.chunk_size))
        if len(chunks) > CRM_COMPOSITE_LIMIT:
            raise StoreError(
                f"{operation} of {len(batch)} record(s) exceeds the atomic batch limit of "
                f"{self.chunk_size * CRM_COMPOSITE_LIMIT}"
            )
        return chunks

    def _save_requests(
        self,
        operation: str,
        method: str,
        path: str,
        batch: Sequence[Record],
        *,
        include_id: bool = False,
        skip_none: bool = False,
    ) -> list[_ChunkRequest]:
        return [
            _ChunkRequest(
                method,
                path,
                chunk,
                body={
                    "allOrNone": True,
                    "records": [
                        to_payload(record, include_id=include_id, skip_none=skip_none)
                        for record in chunk
                    ],
                },
            )
            for chunk in self._chunks(operation, batch)
        ]

    def _write(
        self,
        operation: str,
        requests: Sequence[_ChunkRequest],
        *,
        assign_ids: bool = True,
    ) -> list[SaveResult]:
        replies = asyncio.run(self._execute_async(requests))
        results: list[SaveResult] = []
        details: list[StoreErrorDetail] = []
        for request, (status_code, payload) in zip(requests, replies, strict=True):
            if 200 <= status_code < 300:
                chunk_results = _parse(SAVE_RESULTS.validate_python, payload)
                details.extend(_result_details(operation, request.records, chunk_results))
                results.extend(chunk_results)
            else:
                details.extend(_payload_error_details(payload, f"HTTP {status_code}"))
        _raise_for_details(operation, details)

        # ids land only once every chunk of the batch is committed
        if assign_ids:
            records = [record for request in requests for record in request.records]
            for record, result in zip(records, results, strict=True):
                record.id = result.id or record.id
        return results

    # HTTP plumbing -----------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self.config.instance_url.rstrip('/')}{path}"

    def _collections_path(self) -> str:
        return f"{self.config.data_path}/composite/sobjects"

    async def _query_async(
        self,
        record_cls: type[Record],
        key_field: str,
        values: Sequence[object],
        where: Mapping[str, object] | None,
    ) -> list[Record]:
        found: list[Record] = []
        async with self.client_factory(self.config.resilience) as client:
            for chunk in batched(values, self.chunk_size):
                soql = build_select(record_cls, key_field, chunk, where=where)
                response = await self._send(
                    client.get(self._url(f"{self.config.data_path}/query"), params={"q": soql})
                )
                while True:
                    page = _parse(QueryResponse.model_validate, _json(response))
                    found.extend(from_payload(record_cls, row) for row in page.records)
                    if page.done or page.next_records_url is None:
                        break
                    response = await self._send(client.get(self._url(page.next_records_url)))
        return found

    async def _execute_async(
        self,
        requests: Sequence[_ChunkRequest],
    ) -> list[tuple[int, object]]:
        """Send ``requests`` atomically; returns ``(status, body)`` per request."""

        async with self.client_factory(self.config.resilience) as client:
            if len(requests) == 1:
                (request,) = requests
                response = await self._send(
                    client.request(
                        request.method,
                        self._url(request.path),
                        params=request.params,
                        json=request.body,
                    )
                )
                return [(response.status_code, _json(response))]

            body = {
                "allOrNone": True,
                "compositeRequest": [
                    request.subrequest(f"chunk{index}") for index, request in enumerate(requests)
                ],
            }
            response = await self._send(
                client.post(self._url(f"{self.config.data_path}/composite"), json=body)
            )
        composite = _parse(CompositeResponse.model_validate, _json(response))
        if len(composite.responses) != len(requests):
            raise StoreError(
                f"Expected {len(requests)} composite subresponse(s), got {len(composite.responses)}"
            )
        return [(reply.http_status_code, reply.body) for reply in composite.responses]

    async def _send(self, request: Awaitable[httpx.Response]) -> httpx.Response:
        try:
            response = await request
        except httpx.HTTPError as exc:
            log.error(f"CRM API request failed: {exc}")
            raise StoreError(f"CRM API request failed: {exc}") from exc
        if response.is_success:
            return response
        details = _error_details(response)
        log.error(f"CRM API error {response.status_code}: {'; '.join(map(str, details))}")
        raise StoreError(f"CRM API returned HTTP {response.status_code}", details=details)


def _json(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise StoreError(
            f"CRM API returned a non-JSON body (HTTP {response.status_code})"
        ) from exc


def _parse[T](validate: Callable[[object], T], payload: object) -> T:
    try:
        return validate(payload)
    except PayloadValidationError as exc:
        raise StoreError("Unexpected CRM API response payload") from exc


def _payload_error_details(payload: object, fallback: str) -> list[StoreErrorDetail]:
    try:
        errors = API_ERRORS.validate_python(payload)
    except PayloadValidationError:
        return [StoreErrorDetail(message=fallback)]
    return [
        StoreErrorDetail(
            message=error.message,
            status_code=error.status_code,
            fields=tuple(error.fields),
        )
        for error in errors
    ]


def _error_details(response: httpx.Response) -> list[StoreErrorDetail]:
    fallback = response.text or response.reason_phrase
    try:
        payload = response.json()
    except ValueError:
        return [StoreErrorDetail(message=fallback)]
    return _payload_error_details(payload, fallback)


def _result_details(
    operation: str,
    chunk: Sequence[Record],
    results: Sequence[SaveResult],
) -> list[StoreErrorDetail]:
    if len(results) != len(chunk):
        raise StoreError(
            f"{operation}: expected {len(chunk)} result(s), got {len(results)}",
        )
    details: list[StoreErrorDetail] = []
    for record, result in zip(chunk, results, strict=True):
        if result.success:
            continue
        errors = result.errors or []
        details.extend(
            StoreErrorDetail(
                message=error.message,
                record_type=record.record_type,
                record_id=record.id or result.id,
                status_code=error.status_code,
                fields=tuple(error.fields),
            )
            for error in errors
        )
        if not errors:
            details.append(
                StoreErrorDetail(
                    message="Rejected without an error message",
                    record_type=record.record_type,
                    record_id=record.id or result.id,
                )
            )
    return details


def _raise_for_details(operation: str, details: Sequence[StoreErrorDetail]) -> None:
    if not details:
        return
    # entries that were fine themselves are only reported as rolled back or halted
    causes = [
        detail for detail in details if detail.status_code not in (ROLLED_BACK, PROCESSING_HALTED)
    ]
    log.error(f"CRM API rejected {operation} batch: {'; '.join(map(str, causes or details))}")
    raise_if_rejected(operation, causes or details)


def _ids(batch: Sequence[Record]) -> tuple[str, ...]:
    return tuple(record.id or "" for record in batch)


if TYPE_CHECKING:
    from crmrecon.domain.ports.persistence import RecordStore

    _store_check: RecordStore = RestRecordStore()
