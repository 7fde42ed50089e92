"""SQLAlchemy adapter package for crmrecon."""

from __future__ import annotations

from .mappings import TABLE_BY_RECORD_TYPE, mapper_registry, start_mappers
from .store import SqlAlchemyRecordStore
from .unit_of_work import (
    SqlAlchemyUnitOfWork,
    StartupError,
    configured_engine,
    is_started,
    shutdown,
    startup,
)

__all__ = [
    "TABLE_BY_RECORD_TYPE",
    "SqlAlchemyRecordStore",
    "SqlAlchemyUnitOfWork",
    "StartupError",
    "configured_engine",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
