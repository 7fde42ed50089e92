from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from crmrecon.config import (
    DEFAULT_CRM_API_VERSION,
    ConfigurationError,
    MissingConfigurationError,
    RetryPolicy,
    StoreBackend,
    configure_logging,
    get_crm_api_config,
    get_database_config,
    get_storage_config,
    get_store_backend,
    optional_env_var,
    require_env_var,
    require_env_vars,
)

if TYPE_CHECKING:
    from pathlib import Path


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_lists_every_missing_name(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.setenv("MISSING_B", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_optional_env_var_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPTIONAL_VAR", raising=False)
    assert optional_env_var("OPTIONAL_VAR", "fallback") == "fallback"

    monkeypatch.setenv("OPTIONAL_VAR", " set ")
    assert optional_env_var("OPTIONAL_VAR", "fallback") == "set"


def test_crm_api_config_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CRM_INSTANCE_URL", "https://acme.my.crm.test/")
    monkeypatch.setenv("CRM_ACCESS_TOKEN", "secret")
    monkeypatch.delenv("CRM_API_VERSION", raising=False)

    config = get_crm_api_config()

    assert config.api_version == DEFAULT_CRM_API_VERSION
    assert config.data_path == f"/services/data/{DEFAULT_CRM_API_VERSION}"
    assert config.resilience.base_url == "https://acme.my.crm.test"
    assert config.resilience.default_headers is not None
    assert config.resilience.default_headers["Authorization"] == "Bearer secret"
    assert config.resilience.ratelimit is not None


def test_crm_api_config_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CRM_INSTANCE_URL", raising=False)
    monkeypatch.delenv("CRM_ACCESS_TOKEN", raising=False)

    with pytest.raises(MissingConfigurationError, match="CRM_ACCESS_TOKEN, CRM_INSTANCE_URL"):
        get_crm_api_config()


def test_default_retry_policy_never_replays_inserts() -> None:
    policy = RetryPolicy()

    assert "POST" not in policy.allowed_methods
    assert 429 in policy.status_forcelist


def test_store_backend_selection(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CRMRECON_STORE_BACKEND", raising=False)
    assert get_store_backend() is StoreBackend.SQL

    monkeypatch.setenv("CRMRECON_STORE_BACKEND", "Memory")
    assert get_store_backend() is StoreBackend.MEMORY

    monkeypatch.setenv("CRMRECON_STORE_BACKEND", "carrier-pigeon")
    with pytest.raises(ConfigurationError, match="carrier-pigeon"):
        get_store_backend()


def test_database_uri_prefers_environment(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("CRMRECON_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DATABASE_URI", raising=False)

    storage = get_storage_config()
    assert storage.data_dir == tmp_path.resolve()
    assert storage.database_file == tmp_path.resolve() / "crmrecon.db"
    assert get_database_config().uri == f"sqlite+pysqlite:///{tmp_path.resolve() / 'crmrecon.db'}"

    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    assert get_database_config().uri == "sqlite+pysqlite:///:memory:"


def test_configure_logging_sets_root_level() -> None:
    root = logging.getLogger()
    previous_level, previous_handlers = root.level, list(root.handlers)
    try:
        configure_logging(level=logging.DEBUG, force=True)
        assert root.level == logging.DEBUG
        assert root.handlers
    finally:
        for handler in root.handlers:
            root.removeHandler(handler)
        for handler in previous_handlers:
            root.addHandler(handler)
        root.setLevel(previous_level)
