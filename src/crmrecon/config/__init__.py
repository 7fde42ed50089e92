"""Application configuration helpers."""

from __future__ import annotations

from .backend import DEFAULT_STORE_BACKEND, StoreBackend, get_store_backend
from .crm import (
    CRM_COLLECTION_LIMIT,
    CRM_COMPOSITE_LIMIT,
    DEFAULT_CRM_API_VERSION,
    CrmApiConfig,
    get_crm_api_config,
)
from .env import optional_env_var, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "CRM_COLLECTION_LIMIT",
    "CRM_COMPOSITE_LIMIT",
    "DEFAULT_CRM_API_VERSION",
    "DEFAULT_STORE_BACKEND",
    "ConfigurationError",
    "CrmApiConfig",
    "DatabaseConfig",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "StorageConfig",
    "StoreBackend",
    "configure_logging",
    "get_crm_api_config",
    "get_database_config",
    "get_storage_config",
    "get_store_backend",
    "optional_env_var",
    "require_env_var",
    "require_env_vars",
]
