from __future__ import annotations

import logging

from ..core.errors import AccountForbiddenError, AccountNotFoundError
from ..models import Account, Ownership, OwnershipStatus
from .stores import AccountStore


logger = logging.getLogger(__name__)


class OwnershipResolver:
    """Classifies a caller against an account number.

    The store answers with a single read, so "exists" and "is owned" are
    decided from the same snapshot of the account.
    """

    def __init__(self, accounts: AccountStore) -> None:
        self.accounts = accounts

    def resolve(self, account_number: str, user_id: int) -> Ownership:
        return self.accounts.classify(account_number, user_id)

    def require_owned(self, account_number: str, user_id: int) -> Account:
        ownership = self.resolve(account_number, user_id)
        if ownership.status is OwnershipStatus.OWNED:
            return ownership.account
        if ownership.status is OwnershipStatus.FORBIDDEN:
            logger.warning(
                "account.access.forbidden",
                extra={"account_number": account_number, "user_id": user_id},
            )
            raise AccountForbiddenError(
                f"Access to account number {account_number} is forbidden"
            )
        raise AccountNotFoundError(f"Account with number {account_number} not found")
