"""Where the relational record store keeps its SQLite file.

``DATABASE_URI`` wins outright. Without it the database lives in
``$CRMRECON_DATA_DIR/crmrecon.db``, falling back to the platform data
directory (``%LOCALAPPDATA%`` on Windows, ``$XDG_DATA_HOME`` elsewhere).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

DATABASE_FILENAME: Final[str] = "crmrecon.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path

    @property
    def database_file(self) -> Path:
        return self.data_dir / DATABASE_FILENAME

    def database_uri(self) -> str:
        # SQLite creates the file but not its directory
        self.data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{self.database_file}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def _platform_data_home() -> Path:
    if os.name == "nt":
        return Path(os.getenv("LOCALAPPDATA") or Path.home() / "AppData" / "Local")
    return Path(os.getenv("XDG_DATA_HOME") or Path.home() / ".local" / "share")


def get_storage_config() -> StorageConfig:
    configured = os.getenv("CRMRECON_DATA_DIR")
    data_dir = Path(configured) if configured else _platform_data_home() / "crmrecon"
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    uri = os.getenv("DATABASE_URI")
    if uri:
        return DatabaseConfig(uri=uri)
    return DatabaseConfig(uri=(storage or get_storage_config()).database_uri())
