"""Public domain model surface."""

from __future__ import annotations

from crmrecon.domain.model.crm import (
    RECORD_CLASSES,
    Account,
    Case,
    Contact,
    Lead,
    Opportunity,
    record_class_for,
)
from crmrecon.domain.model.enums import CaseStatus, LeadStatus, OpportunityStage, RecordType
from crmrecon.domain.model.record import Record

__all__ = [  # noqa: RUF022
    # base
    "Record",
    # records
    "Account",
    "Opportunity",
    "Contact",
    "Lead",
    "Case",
    "RECORD_CLASSES",
    "record_class_for",
    # enums
    "CaseStatus",
    "LeadStatus",
    "OpportunityStage",
    "RecordType",
]
