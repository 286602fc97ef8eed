from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from ..core.errors import AccountNotFoundError, ConcurrentModificationError, ConflictError
from ..models import Account, AccountType, Address, Ownership, Transaction, User
from .stores import DuplicateAccountNumberError, DuplicateEmailError


class _State:
    """Dicts shared by the in-memory stores, guarded by one re-entrant lock.

    Writes made inside ``InMemoryStorage.atomic`` are staged per thread and
    applied together on exit, so readers never see half a transaction.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.accounts: Dict[UUID, Account] = {}
        self.numbers: Dict[str, UUID] = {}
        self.transactions: Dict[str, Transaction] = {}
        self.by_account: Dict[UUID, List[str]] = {}
        self.users: Dict[int, User] = {}
        self.emails: Dict[str, int] = {}
        self.user_ids = itertools.count(1)
        self.account_locks: Dict[UUID, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._local = threading.local()

    def lock_for(self, account_id: UUID) -> threading.Lock:
        with self._registry_lock:
            return self.account_locks.setdefault(account_id, threading.Lock())

    def forget(self, account_id: UUID) -> None:
        with self._registry_lock:
            self.account_locks.pop(account_id, None)

    @property
    def staged(self) -> Optional[List[Callable[[], None]]]:
        return getattr(self._local, "staged", None)

    @staged.setter
    def staged(self, value: Optional[List[Callable[[], None]]]) -> None:
        self._local.staged = value

    def write(self, apply: Callable[[], None]) -> None:
        staged = self.staged
        if staged is None:
            with self.lock:
                apply()
        else:
            staged.append(apply)


class InMemoryAccountStore:
    def __init__(self, state: _State) -> None:
        self._state = state

    def find_by_number(self, account_number: str) -> Optional[Account]:
        with self._state.lock:
            account_id = self._state.numbers.get(account_number)
            return self._state.accounts.get(account_id) if account_id else None

    def find_by_number_and_owner(
        self, account_number: str, user_id: int
    ) -> Optional[Account]:
        account = self.find_by_number(account_number)
        if account is None or account.user_id != user_id:
            return None
        return account

    def classify(self, account_number: str, user_id: int) -> Ownership:
        account = self.find_by_number(account_number)
        if account is None:
            return Ownership.not_found()
        if account.user_id != user_id:
            return Ownership.forbidden()
        return Ownership.owned(account)

    def find_all_by_owner(self, user_id: int) -> list[Account]:
        with self._state.lock:
            owned = [a for a in self._state.accounts.values() if a.user_id == user_id]
        return sorted(owned, key=lambda a: a.created_timestamp)

    def owner_has_accounts(self, user_id: int) -> bool:
        with self._state.lock:
            return any(a.user_id == user_id for a in self._state.accounts.values())

    def insert(self, account: Account) -> Account:
        with self._state.lock:
            if account.account_number in self._state.numbers:
                raise DuplicateAccountNumberError(
                    f"Account number {account.account_number} already exists"
                )
            self._state.accounts[account.id] = account
            self._state.numbers[account.account_number] = account.id
            self._state.by_account.setdefault(account.id, [])
        return account

    def get(self, account_id: UUID) -> Optional[Account]:
        with self._state.lock:
            return self._state.accounts.get(account_id)

    def update_details(
        self,
        account_id: UUID,
        *,
        name: str,
        account_type: AccountType,
        updated_at: datetime,
    ) -> Account:
        with self._state.lock:
            current = self._state.accounts.get(account_id)
            if current is None:
                raise AccountNotFoundError(f"Account {account_id} not found")
            account = current.with_changes(
                name=name, account_type=account_type, updated_timestamp=updated_at
            )
            self._state.accounts[account_id] = account
        return account

    def replace_balance(
        self,
        account_id: UUID,
        new_balance: Decimal,
        updated_at: datetime,
        *,
        expected_balance: Decimal,
    ) -> None:
        def apply() -> None:
            current = self._state.accounts.get(account_id)
            if current is None or current.balance != expected_balance:
                raise ConcurrentModificationError(
                    "Account balance changed during the transaction, please retry"
                )
            self._state.accounts[account_id] = current.with_changes(
                balance=new_balance, updated_timestamp=updated_at
            )

        self._state.write(apply)

    def delete(self, account: Account) -> None:
        # Waits for any balance change in flight on this account.
        with self._state.lock_for(account.id):
            with self._state.lock:
                self._state.accounts.pop(account.id, None)
                self._state.numbers.pop(account.account_number, None)
        self._state.forget(account.id)


class InMemoryTransactionStore:
    """Append-only log indexed by owning account id."""

    def __init__(self, state: _State) -> None:
        self._state = state

    def insert(self, transaction: Transaction) -> Transaction:
        with self._state.lock:
            if transaction.id in self._state.transactions:
                raise ConflictError(f"Transaction {transaction.id} already recorded")

        def apply() -> None:
            self._state.transactions[transaction.id] = transaction
            self._state.by_account.setdefault(transaction.account_id, []).append(
                transaction.id
            )

        self._state.write(apply)
        return transaction

    def find_all_by_account(self, account_id: UUID) -> list[Transaction]:
        with self._state.lock:
            ids = list(self._state.by_account.get(account_id, ()))
            newest_inserted_first = [self._state.transactions[i] for i in reversed(ids)]
        # sorted() is stable, so equal timestamps keep newest-inserted first.
        return sorted(
            newest_inserted_first, key=lambda t: t.created_timestamp, reverse=True
        )

    def find_by_id_and_account(
        self, transaction_id: str, account_id: UUID
    ) -> Optional[Transaction]:
        with self._state.lock:
            transaction = self._state.transactions.get(transaction_id)
        if transaction is None or transaction.account_id != account_id:
            return None
        return transaction


class InMemoryUserStore:
    def __init__(self, state: _State) -> None:
        self._state = state

    def insert(
        self,
        *,
        name: str,
        email: str,
        phone_number: str,
        password_hash: str,
        address: Address,
        created_at: datetime,
    ) -> User:
        with self._state.lock:
            if email in self._state.emails:
                raise DuplicateEmailError(f"A user with email {email} already exists")
            user = User(
                id=next(self._state.user_ids),
                name=name,
                email=email,
                phone_number=phone_number,
                password_hash=password_hash,
                address=address,
                created_timestamp=created_at,
                updated_timestamp=created_at,
            )
            self._state.users[user.id] = user
            self._state.emails[email] = user.id
        return user

    def find_by_id(self, user_id: int) -> Optional[User]:
        with self._state.lock:
            return self._state.users.get(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        with self._state.lock:
            user_id = self._state.emails.get(email)
            return self._state.users.get(user_id) if user_id is not None else None

    def update(self, user: User) -> User:
        with self._state.lock:
            self._state.users[user.id] = user
        return user

    def delete(self, user_id: int) -> None:
        with self._state.lock:
            user = self._state.users.pop(user_id, None)
            if user is not None:
                self._state.emails.pop(user.email, None)


class InMemoryStorage:
    """Process-local storage with one lock per account for balance changes."""

    def __init__(self) -> None:
        self._state = _State()
        self.accounts = InMemoryAccountStore(self._state)
        self.transactions = InMemoryTransactionStore(self._state)
        self.users = InMemoryUserStore(self._state)

    @contextmanager
    def atomic(self, account_id: UUID) -> Iterator[Optional[Account]]:
        account = None
        try:
            with self._state.lock_for(account_id):
                self._state.staged = []
                try:
                    account = self.accounts.get(account_id)
                    yield account
                    with self._state.lock:
                        for apply in self._state.staged:
                            apply()
                finally:
                    self._state.staged = None
        finally:
            if account is None:
                self._state.forget(account_id)

    def commit(self) -> None:
        pass

