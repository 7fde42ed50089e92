"""Create the CRM record tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-09-28 10:12:41

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _account_fk(table: str, ondelete: str) -> sa.ForeignKeyConstraint:
    return sa.ForeignKeyConstraint(
        ["account_id"],
        ["account.id"],
        name=op.f(f"fk_{table}_account_id_account"),
        ondelete=ondelete,
    )


def upgrade() -> None:
    op.create_table(
        "account",
        sa.Column("id", sa.String(length=18), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("industry", sa.String(length=40), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("website", sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_account")),
    )
    op.create_index(op.f("ix_account_name"), "account", ["name"])

    op.create_table(
        "opportunity",
        sa.Column("id", sa.String(length=18), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("stage_name", sa.String(length=40), nullable=False),
        sa.Column("close_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=18, scale=2), nullable=True),
        sa.Column("account_id", sa.String(length=18), nullable=True),
        _account_fk("opportunity", "CASCADE"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_opportunity")),
    )
    op.create_index(op.f("ix_opportunity_name"), "opportunity", ["name"])
    op.create_index(op.f("ix_opportunity_account_id"), "opportunity", ["account_id"])

    op.create_table(
        "contact",
        sa.Column("id", sa.String(length=18), nullable=False),
        sa.Column("first_name", sa.String(length=40), nullable=True),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("email", sa.String(length=80), nullable=True),
        sa.Column("account_id", sa.String(length=18), nullable=True),
        _account_fk("contact", "SET NULL"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_contact")),
    )
    op.create_index(op.f("ix_contact_last_name"), "contact", ["last_name"])
    op.create_index(op.f("ix_contact_account_id"), "contact", ["account_id"])

    op.create_table(
        "lead",
        sa.Column("id", sa.String(length=18), nullable=False),
        sa.Column("first_name", sa.String(length=40), nullable=True),
        sa.Column("last_name", sa.String(length=80), nullable=False),
        sa.Column("company", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=40), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_lead")),
    )
    op.create_index(op.f("ix_lead_last_name"), "lead", ["last_name"])

    op.create_table(
        "support_case",
        sa.Column("id", sa.String(length=18), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=40), nullable=False),
        sa.Column("origin", sa.String(length=40), nullable=True),
        sa.Column("account_id", sa.String(length=18), nullable=True),
        _account_fk("support_case", "SET NULL"),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_support_case")),
    )
    op.create_index(op.f("ix_support_case_subject"), "support_case", ["subject"])
    op.create_index(op.f("ix_support_case_account_id"), "support_case", ["account_id"])


def downgrade() -> None:
    for table, indexed in (
        ("support_case", ("subject", "account_id")),
        ("lead", ("last_name",)),
        ("contact", ("last_name", "account_id")),
        ("opportunity", ("name", "account_id")),
        ("account", ("name",)),
    ):
        for column in indexed:
            op.drop_index(op.f(f"ix_{table}_{column}"), table_name=table)
        op.drop_table(table)
