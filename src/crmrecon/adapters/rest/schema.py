"""Pydantic models describing the hosted CRM REST API payloads."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter


class CrmBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ApiError(CrmBaseModel):
    """Error entry of a save result or of a failed request body."""

    status_code: str | None = Field(
        default=None, validation_alias=AliasChoices("statusCode", "errorCode")
    )
    message: str = ""
    fields: list[str] = Field(default_factory=list)


class SaveResult(CrmBaseModel):
    id: str | None = None
    success: bool
    errors: list[ApiError] = Field(default_factory=list)
    created: bool | None = None


class QueryResponse(CrmBaseModel):
    total_size: int = Field(alias="totalSize")
    done: bool
    records: list[dict[str, Any]] = Field(default_factory=list)
    next_records_url: str | None = Field(default=None, alias="nextRecordsUrl")


class CompositeSubresponse(CrmBaseModel):
    body: Any = None
    http_status_code: int = Field(alias="httpStatusCode")
    reference_id: str | None = Field(default=None, alias="referenceId")


class CompositeResponse(CrmBaseModel):
    """Body of ``/composite``: one subresponse per subrequest, in request order."""

    responses: list[CompositeSubresponse] = Field(alias="compositeResponse")


SAVE_RESULTS: TypeAdapter[list[SaveResult]] = TypeAdapter(list[SaveResult])
API_ERRORS: TypeAdapter[list[ApiError]] = TypeAdapter(list[ApiError])
