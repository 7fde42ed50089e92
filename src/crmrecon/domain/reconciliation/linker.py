"""Associate contacts with the account sharing their last name."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from crmrecon.domain.errors import ValidationError

from .plan import LinkResult

if TYPE_CHECKING:
    from collections.abc import Iterable

    from crmrecon.domain.model import Account, Contact

log = getLogger(__name__)


def link_contacts(
    contacts: Iterable[Contact],
    accounts: Iterable[Account],
    *,
    casefold: bool = False,
) -> LinkResult:
    """Point each contact's ``account_id`` at the persisted account named like its last name.

    Contacts without a matching account are left out of ``linked`` entirely and
    reported in ``skipped``; they are not persisted unlinked.

    With ``casefold=True`` names match the way a case-insensitive store
    compares them.
    """

    accounts_by_name: dict[str, Account] = {}
    account_list = list(accounts)
    for account in account_list:
        if account.id is None:
            raise ValidationError(f"Account {account.name!r} must be persisted before linking")
        if account.name is not None:
            accounts_by_name.setdefault(_name_key(account.name, casefold=casefold), account)

    contact_list = list(contacts)
    for position, contact in enumerate(contact_list):
        if contact.last_name is None or not contact.last_name.strip():
            raise ValidationError(f"Contact at position {position} has no last name")

    result = LinkResult(accounts=account_list)
    for contact in contact_list:
        account = accounts_by_name.get(_name_key(contact.last_name or "", casefold=casefold))
        if account is None:
            result.skipped.append(contact)
            continue
        contact.account_id = account.id
        result.linked.append(contact)

    if result.skipped:
        log.warning(
            "Skipped %d contact(s) without a matching account: %s",
            len(result.skipped),
            ", ".join(repr(contact.last_name) for contact in result.skipped),
        )
    return result


def _name_key(name: str, *, casefold: bool) -> str:
    return name.casefold() if casefold else name
