"""SQLAlchemy mapping metadata for the CRM record model."""

from __future__ import annotations

from functools import cache
from types import MappingProxyType
from typing import TYPE_CHECKING, Final

from sqlalchemy import Column, Date, ForeignKey, Numeric, String, Table, Text, orm
from sqlalchemy.orm import configure_mappers

from crmrecon.domain.model import Account, Case, Contact, Lead, Opportunity, RecordType

if TYPE_CHECKING:
    from collections.abc import Mapping

ID_LENGTH: Final[int] = 18


def _id_column() -> Column[str]:
    return Column("id", String(ID_LENGTH), primary_key=True)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Record tables ----------------------------------------------------------------

account_table = Table(
    "account",
    mapper_registry.metadata,
    _id_column(),
    Column("name", String(255), nullable=False, index=True),
    Column("description", Text, nullable=True),
    Column("industry", String(40), nullable=True),
    Column("phone", String(40), nullable=True),
    Column("website", String(255), nullable=True),
)

opportunity_table = Table(
    "opportunity",
    mapper_registry.metadata,
    _id_column(),
    Column("name", String(120), nullable=False, index=True),
    Column("stage_name", String(40), nullable=False),
    Column("close_date", Date, nullable=False),
    Column("amount", Numeric(18, 2), nullable=True),
    Column(
        "account_id",
        String(ID_LENGTH),
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    ),
)

contact_table = Table(
    "contact",
    mapper_registry.metadata,
    _id_column(),
    Column("first_name", String(40), nullable=True),
    Column("last_name", String(80), nullable=False, index=True),
    Column("email", String(80), nullable=True),
    Column(
        "account_id",
        String(ID_LENGTH),
        ForeignKey("account.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
)

lead_table = Table(
    "lead",
    mapper_registry.metadata,
    _id_column(),
    Column("first_name", String(40), nullable=True),
    Column("last_name", String(80), nullable=False, index=True),
    Column("company", String(255), nullable=False),
    Column("status", String(40), nullable=False),
)

case_table = Table(
    "support_case",
    mapper_registry.metadata,
    _id_column(),
    Column("subject", String(255), nullable=True, index=True),
    Column("status", String(40), nullable=False),
    Column("origin", String(40), nullable=True),
    Column(
        "account_id",
        String(ID_LENGTH),
        ForeignKey("account.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    ),
)

TABLE_BY_RECORD_TYPE: Final[Mapping[RecordType, Table]] = MappingProxyType(
    {
        RecordType.ACCOUNT: account_table,
        RecordType.OPPORTUNITY: opportunity_table,
        RecordType.CONTACT: contact_table,
        RecordType.LEAD: lead_table,
        RecordType.CASE: case_table,
    }
)


@cache
def start_mappers() -> orm.registry:
    """Map the record dataclasses onto their tables (idempotent)."""

    for record_cls in (Account, Opportunity, Contact, Lead, Case):
        mapper_registry.map_imperatively(
            record_cls,
            TABLE_BY_RECORD_TYPE[record_cls.RECORD_TYPE],
        )

    configure_mappers()
    return mapper_registry
