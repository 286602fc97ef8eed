from __future__ import annotations

import logging
import secrets
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Optional

from ..core.config import Settings, get_settings
from ..core.errors import ConflictError, TransactionNotFoundError
from ..models import (
    Account,
    AccountCreate,
    AccountResponse,
    AccountUpdate,
    TransactionCreate,
    TransactionResponse,
)
from .ownership import OwnershipResolver
from .processor import TransactionProcessor
from .stores import DuplicateAccountNumberError, Storage


logger = logging.getLogger(__name__)


def generate_account_number() -> str:
    return f"{secrets.randbelow(100_000_000):08d}"


def generate_sort_code() -> str:
    return "-".join(f"{secrets.randbelow(100):02d}" for _ in range(3))


class AccountService:
    def __init__(
        self,
        storage: Storage,
        settings: Optional[Settings] = None,
        number_generator: Callable[[], str] = generate_account_number,
    ) -> None:
        self.storage = storage
        self.settings = settings or get_settings()
        self.number_generator = number_generator
        self.resolver = OwnershipResolver(storage.accounts)
        self.processor = TransactionProcessor(storage, self.resolver)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------
    def create_account(self, user_id: int, payload: AccountCreate) -> AccountResponse:
        for attempt in range(1, self.settings.account_number_attempts + 1):
            number = self.number_generator()
            if self.storage.accounts.find_by_number(number) is not None:
                logger.debug("account.number.collision", extra={"attempt": attempt})
                continue
            now = datetime.now(UTC)
            candidate = Account(
                id=uuid.uuid4(),
                user_id=user_id,
                account_number=number,
                sort_code=generate_sort_code(),
                name=payload.name,
                account_type=payload.account_type,
                balance=Decimal("0.00"),
                currency=self.settings.currency,
                created_timestamp=now,
                updated_timestamp=now,
            )
            try:
                account = self.storage.accounts.insert(candidate)
            except DuplicateAccountNumberError:
                logger.debug("account.number.collision", extra={"attempt": attempt})
                continue
            self.storage.commit()
            logger.info(
                "account.created",
                extra={"account_number": account.account_number, "user_id": user_id},
            )
            return AccountResponse.from_domain(account)

        raise ConflictError("Could not allocate a unique account number, please retry")

    def list_accounts(self, user_id: int) -> list[AccountResponse]:
        return [
            AccountResponse.from_domain(account)
            for account in self.storage.accounts.find_all_by_owner(user_id)
        ]

    def get_account(self, account_number: str, user_id: int) -> AccountResponse:
        account = self.resolver.require_owned(account_number, user_id)
        return AccountResponse.from_domain(account)

    def update_account(
        self, account_number: str, user_id: int, payload: AccountUpdate
    ) -> AccountResponse:
        account = self.resolver.require_owned(account_number, user_id)
        updated = self.storage.accounts.update_details(
            account.id,
            name=payload.name,
            account_type=payload.account_type,
            updated_at=datetime.now(UTC),
        )
        self.storage.commit()
        logger.info("account.updated", extra={"account_number": account_number})
        return AccountResponse.from_domain(updated)

    def delete_account(self, account_number: str, user_id: int) -> None:
        account = self.resolver.require_owned(account_number, user_id)
        self.storage.accounts.delete(account)
        self.storage.commit()
        logger.info(
            "account.deleted",
            extra={"account_number": account_number, "balance": str(account.balance)},
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def create_transaction(
        self, account_number: str, user_id: int, payload: TransactionCreate
    ) -> TransactionResponse:
        transaction = self.processor.process(account_number, user_id, payload)
        return TransactionResponse.from_domain(transaction)

    def get_transaction_history(
        self, account_number: str, user_id: int
    ) -> list[TransactionResponse]:
        account = self.resolver.require_owned(account_number, user_id)
        return [
            TransactionResponse.from_domain(transaction)
            for transaction in self.storage.transactions.find_all_by_account(account.id)
        ]

    def get_transaction(
        self, account_number: str, transaction_id: str, user_id: int
    ) -> TransactionResponse:
        account = self.resolver.require_owned(account_number, user_id)
        transaction = self.storage.transactions.find_by_id_and_account(
            transaction_id, account.id
        )
        # Ownership of the path account is already proven, so a transaction
        # from another account is reported as missing rather than forbidden.
        if transaction is None or transaction.account_id != account.id:
            raise TransactionNotFoundError(
                f"Transaction {transaction_id} not found for account number {account_number}"
            )
        return TransactionResponse.from_domain(transaction)
