"""CRM record types: accounts, opportunities, contacts, leads and cases."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

from crmrecon.domain.model.enums import CaseStatus, LeadStatus, RecordType
from crmrecon.domain.model.record import Record

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import date
    from decimal import Decimal


@dataclass(eq=False, kw_only=True, repr=False)
class Account(Record):
    RECORD_TYPE: ClassVar[RecordType] = RecordType.ACCOUNT
    KEY_FIELD: ClassVar[str] = "name"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("name",)
    API_FIELDS: ClassVar[Mapping[str, str]] = MappingProxyType(
        {
            "name": "Name",
            "description": "Description",
            "industry": "Industry",
            "phone": "Phone",
            "website": "Website",
        }
    )

    name: str | None = None
    description: str | None = None
    industry: str | None = None
    phone: str | None = None
    website: str | None = None


@dataclass(eq=False, kw_only=True, repr=False)
class Opportunity(Record):
    """Opportunity names are only unique within their parent account."""

    RECORD_TYPE: ClassVar[RecordType] = RecordType.OPPORTUNITY
    KEY_FIELD: ClassVar[str] = "name"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("name", "stage_name", "close_date")
    API_FIELDS: ClassVar[Mapping[str, str]] = MappingProxyType(
        {
            "name": "Name",
            "stage_name": "StageName",
            "close_date": "CloseDate",
            "amount": "Amount",
            "account_id": "AccountId",
        }
    )

    name: str | None = None
    stage_name: str | None = None
    close_date: date | None = None
    amount: Decimal | None = None
    account_id: str | None = None


@dataclass(eq=False, kw_only=True, repr=False)
class Contact(Record):
    RECORD_TYPE: ClassVar[RecordType] = RecordType.CONTACT
    KEY_FIELD: ClassVar[str] = "last_name"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("last_name",)
    API_FIELDS: ClassVar[Mapping[str, str]] = MappingProxyType(
        {
            "first_name": "FirstName",
            "last_name": "LastName",
            "email": "Email",
            "account_id": "AccountId",
        }
    )

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    account_id: str | None = None


@dataclass(eq=False, kw_only=True, repr=False)
class Lead(Record):
    RECORD_TYPE: ClassVar[RecordType] = RecordType.LEAD
    KEY_FIELD: ClassVar[str] = "last_name"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("last_name", "company", "status")
    API_FIELDS: ClassVar[Mapping[str, str]] = MappingProxyType(
        {
            "first_name": "FirstName",
            "last_name": "LastName",
            "company": "Company",
            "status": "Status",
        }
    )

    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    status: str | None = LeadStatus.OPEN.value


@dataclass(eq=False, kw_only=True, repr=False)
class Case(Record):
    RECORD_TYPE: ClassVar[RecordType] = RecordType.CASE
    KEY_FIELD: ClassVar[str] = "subject"
    REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = ("status",)
    API_FIELDS: ClassVar[Mapping[str, str]] = MappingProxyType(
        {
            "subject": "Subject",
            "status": "Status",
            "origin": "Origin",
            "account_id": "AccountId",
        }
    )

    subject: str | None = None
    status: str | None = CaseStatus.NEW.value
    origin: str | None = None
    account_id: str | None = None


RECORD_CLASSES: Mapping[RecordType, type[Record]] = MappingProxyType(
    {cls.RECORD_TYPE: cls for cls in (Account, Opportunity, Contact, Lead, Case)}
)


def record_class_for(record_type: RecordType | type[Record]) -> type[Record]:
    """Return the record class for ``record_type`` (classes pass through unchanged)."""

    if isinstance(record_type, type):
        return record_type
    return RECORD_CLASSES[RecordType(record_type)]
