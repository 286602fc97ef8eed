"""Storage interfaces consumed by the account and transaction services.

Two backends implement them: ``repository.SqlStorage`` on top of a SQLModel
session and ``memory.InMemoryStorage`` for tests and single-process runs.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Optional, Protocol
from uuid import UUID

from ..core.errors import ConflictError
from ..models import Account, AccountType, Address, Ownership, Transaction, User


class DuplicateAccountNumberError(ConflictError):
    """Raised by a store when an account number is already taken."""


class DuplicateEmailError(ConflictError):
    pass


class AccountStore(Protocol):
    def find_by_number(self, account_number: str) -> Optional[Account]: ...

    def find_by_number_and_owner(
        self, account_number: str, user_id: int
    ) -> Optional[Account]: ...

    def classify(self, account_number: str, user_id: int) -> Ownership:
        """Read the account once and classify the caller against it."""

    def find_all_by_owner(self, user_id: int) -> list[Account]: ...

    def owner_has_accounts(self, user_id: int) -> bool: ...

    def insert(self, account: Account) -> Account: ...

    def update_details(
        self,
        account_id: UUID,
        *,
        name: str,
        account_type: AccountType,
        updated_at: datetime,
    ) -> Account: ...

    def replace_balance(
        self,
        account_id: UUID,
        new_balance: Decimal,
        updated_at: datetime,
        *,
        expected_balance: Decimal,
    ) -> None: ...

    def delete(self, account: Account) -> None: ...


class TransactionStore(Protocol):
    def insert(self, transaction: Transaction) -> Transaction: ...

    def find_all_by_account(self, account_id: UUID) -> list[Transaction]:
        """Return the account's transactions, newest first."""

    def find_by_id_and_account(
        self, transaction_id: str, account_id: UUID
    ) -> Optional[Transaction]: ...


class UserStore(Protocol):
    def insert(
        self,
        *,
        name: str,
        email: str,
        phone_number: str,
        password_hash: str,
        address: Address,
        created_at: datetime,
    ) -> User: ...

    def find_by_id(self, user_id: int) -> Optional[User]: ...

    def find_by_email(self, email: str) -> Optional[User]: ...

    def update(self, user: User) -> User: ...

    def delete(self, user_id: int) -> None: ...


class Storage(Protocol):
    accounts: AccountStore
    transactions: TransactionStore
    users: UserStore

    def atomic(self, account_id: UUID) -> AbstractContextManager[Optional[Account]]:
        """Hold exclusive access to one account and commit all writes on exit.

        Yields the freshly re-read account, or ``None`` when it no longer
        exists. Leaving the block with an exception discards every write made
        inside it.
        """

    def commit(self) -> None: ...
