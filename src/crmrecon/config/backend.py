"""Record store backend selection."""

from __future__ import annotations

from enum import StrEnum

from .env import optional_env_var
from .errors import ConfigurationError


class StoreBackend(StrEnum):
    MEMORY = "memory"
    SQL = "sql"
    REST = "rest"


DEFAULT_STORE_BACKEND = StoreBackend.SQL


def get_store_backend() -> StoreBackend:
    raw = optional_env_var("CRMRECON_STORE_BACKEND", DEFAULT_STORE_BACKEND.value).lower()
    try:
        return StoreBackend(raw)
    except ValueError:
        choices = ", ".join(backend.value for backend in StoreBackend)
        raise ConfigurationError(
            f"Unsupported CRMRECON_STORE_BACKEND {raw!r} (expected one of: {choices})"
        ) from None
