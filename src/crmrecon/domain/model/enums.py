"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class RecordType(StrEnum):
    """Object types of the hosted store; values are the store's API object names."""

    ACCOUNT = "Account"
    OPPORTUNITY = "Opportunity"
    CONTACT = "Contact"
    LEAD = "Lead"
    CASE = "Case"


class OpportunityStage(StrEnum):
    PROSPECTING = "Prospecting"
    QUALIFICATION = "Qualification"
    NEEDS_ANALYSIS = "Needs Analysis"
    PROPOSAL = "Proposal/Price Quote"
    NEGOTIATION = "Negotiation/Review"
    CLOSED_WON = "Closed Won"
    CLOSED_LOST = "Closed Lost"


class LeadStatus(StrEnum):
    OPEN = "Open - Not Contacted"
    WORKING = "Working - Contacted"
    CLOSED_CONVERTED = "Closed - Converted"
    CLOSED_NOT_CONVERTED = "Closed - Not Converted"


class CaseStatus(StrEnum):
    NEW = "New"
    WORKING = "Working"
    ESCALATED = "Escalated"
    CLOSED = "Closed"
