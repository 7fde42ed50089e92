"""Hosted CRM API configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import optional_env_var, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

DEFAULT_CRM_API_VERSION: Final[str] = "v60.0"
CRM_TIMEOUT_SECONDS: Final[float] = 30.0
# sObject Collections accept at most 200 records per request
CRM_COLLECTION_LIMIT: Final[int] = 200
# a composite request carries at most 25 subrequests
CRM_COMPOSITE_LIMIT: Final[int] = 25


@dataclass(frozen=True)
class CrmApiConfig:
    """Holds hosted CRM API configuration values."""

    instance_url: str
    access_token: str
    api_version: str
    resilience: ResilienceConfig

    @property
    def data_path(self) -> str:
        return f"/services/data/{self.api_version}"


def _default_resilience(instance_url: str, access_token: str) -> ResilienceConfig:
    return ResilienceConfig(
        name="crm",
        base_url=instance_url.rstrip("/"),
        timeout_seconds=CRM_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
        default_headers={
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        },
    )


def get_crm_api_config(*, resilience: ResilienceConfig | None = None) -> CrmApiConfig:
    values = require_env_vars(("CRM_INSTANCE_URL", "CRM_ACCESS_TOKEN"))
    instance_url = values["CRM_INSTANCE_URL"].strip()
    access_token = values["CRM_ACCESS_TOKEN"].strip()
    return CrmApiConfig(
        instance_url=instance_url,
        access_token=access_token,
        api_version=optional_env_var("CRM_API_VERSION", DEFAULT_CRM_API_VERSION),
        resilience=resilience or _default_resilience(instance_url, access_token),
    )
