from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.errors import AccountNotFoundError, ConcurrentModificationError
from ..models import (
    Account,
    AccountModel,
    AccountType,
    Address,
    Ownership,
    Transaction,
    TransactionModel,
    TransactionType,
    User,
    UserModel,
)
from .stores import DuplicateAccountNumberError, DuplicateEmailError


def _aware(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _to_account(row: AccountModel) -> Account:
    return Account(
        id=row.id,
        user_id=row.user_id,
        account_number=row.account_number,
        sort_code=row.sort_code,
        name=row.name,
        account_type=AccountType(row.account_type),
        balance=row.balance,
        currency=row.currency,
        created_timestamp=_aware(row.created_timestamp),
        updated_timestamp=_aware(row.updated_timestamp),
    )


def _to_transaction(row: TransactionModel) -> Transaction:
    return Transaction(
        id=row.id,
        account_id=row.account_id,
        user_id=row.user_id,
        amount=row.amount,
        currency=row.currency,
        type=TransactionType(row.type),
        reference=row.reference,
        created_timestamp=_aware(row.created_timestamp),
    )


def _to_user(row: UserModel) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        phone_number=row.phone_number,
        password_hash=row.password_hash,
        address=Address(
            line1=row.address_line1,
            town=row.address_town,
            postcode=row.address_postcode,
        ),
        created_timestamp=_aware(row.created_timestamp),
        updated_timestamp=_aware(row.updated_timestamp),
    )


class SqlAccountStore:
    """Thin data access layer for accounts around the SQLModel session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _row_by_number(self, account_number: str) -> Optional[AccountModel]:
        stmt = select(AccountModel).where(AccountModel.account_number == account_number)
        return self.session.exec(stmt).first()

    def find_by_number(self, account_number: str) -> Optional[Account]:
        row = self._row_by_number(account_number)
        return _to_account(row) if row is not None else None

    def find_by_number_and_owner(
        self, account_number: str, user_id: int
    ) -> Optional[Account]:
        stmt = (
            select(AccountModel)
            .where(AccountModel.account_number == account_number)
            .where(AccountModel.user_id == user_id)
        )
        row = self.session.exec(stmt).first()
        return _to_account(row) if row is not None else None

    def classify(self, account_number: str, user_id: int) -> Ownership:
        row = self._row_by_number(account_number)
        if row is None:
            return Ownership.not_found()
        if row.user_id != user_id:
            return Ownership.forbidden()
        return Ownership.owned(_to_account(row))

    def find_all_by_owner(self, user_id: int) -> list[Account]:
        stmt = (
            select(AccountModel)
            .where(AccountModel.user_id == user_id)
            .order_by(AccountModel.created_timestamp)
        )
        return [_to_account(row) for row in self.session.exec(stmt)]

    def owner_has_accounts(self, user_id: int) -> bool:
        stmt = select(AccountModel.id).where(AccountModel.user_id == user_id).limit(1)
        return self.session.exec(stmt).first() is not None

    def insert(self, account: Account) -> Account:
        row = AccountModel(
            id=account.id,
            user_id=account.user_id,
            account_number=account.account_number,
            sort_code=account.sort_code,
            name=account.name,
            account_type=account.account_type.value,
            balance=account.balance,
            currency=account.currency,
            created_timestamp=account.created_timestamp,
            updated_timestamp=account.updated_timestamp,
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateAccountNumberError(
                f"Account number {account.account_number} already exists"
            ) from exc
        self.session.refresh(row)
        return _to_account(row)

    def lock(self, account_id: UUID) -> Optional[Account]:
        stmt = (
            select(AccountModel)
            .where(AccountModel.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self.session.exec(stmt).first()
        return _to_account(row) if row is not None else None

    def update_details(
        self,
        account_id: UUID,
        *,
        name: str,
        account_type: AccountType,
        updated_at: datetime,
    ) -> Account:
        row = self.session.get(AccountModel, account_id)
        if row is None:
            raise AccountNotFoundError(f"Account {account_id} not found")
        row.name = name
        row.account_type = account_type.value
        row.updated_timestamp = updated_at
        self.session.add(row)
        self.session.flush()
        self.session.refresh(row)
        return _to_account(row)

    def replace_balance(
        self,
        account_id: UUID,
        new_balance: Decimal,
        updated_at: datetime,
        *,
        expected_balance: Decimal,
    ) -> None:
        # Compare-and-swap: refuses a write based on a stale balance.
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == account_id)
            .where(AccountModel.balance == expected_balance)
            .values(balance=new_balance, updated_timestamp=updated_at)
        )
        result = self.session.connection().execute(stmt)
        if result.rowcount != 1:
            raise ConcurrentModificationError(
                "Account balance changed during the transaction, please retry"
            )
        cached = self.session.get(AccountModel, account_id)
        if cached is not None:
            self.session.expire(cached)

    def delete(self, account: Account) -> None:
        row = self.session.get(AccountModel, account.id)
        if row is not None:
            self.session.delete(row)
            self.session.flush()


class SqlTransactionStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def insert(self, transaction: Transaction) -> Transaction:
        row = TransactionModel(
            id=transaction.id,
            account_id=transaction.account_id,
            user_id=transaction.user_id,
            amount=transaction.amount,
            currency=transaction.currency,
            type=transaction.type.value,
            reference=transaction.reference,
            created_timestamp=transaction.created_timestamp,
        )
        self.session.add(row)
        self.session.flush()
        self.session.refresh(row)
        return _to_transaction(row)

    def find_all_by_account(self, account_id: UUID) -> list[Transaction]:
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.account_id == account_id)
            .order_by(TransactionModel.created_timestamp.desc(), TransactionModel.seq.desc())
        )
        return [_to_transaction(row) for row in self.session.exec(stmt)]

    def find_by_id_and_account(
        self, transaction_id: str, account_id: UUID
    ) -> Optional[Transaction]:
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.id == transaction_id)
            .where(TransactionModel.account_id == account_id)
        )
        row = self.session.exec(stmt).first()
        return _to_transaction(row) if row is not None else None


class SqlUserStore:
    def __init__(self, session: Session) -> None:
        self.session = session

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
        row = UserModel(
            name=name,
            email=email,
            phone_number=phone_number,
            password_hash=password_hash,
            address_line1=address.line1,
            address_town=address.town,
            address_postcode=address.postcode,
            created_timestamp=created_at,
            updated_timestamp=created_at,
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            raise DuplicateEmailError(f"A user with email {email} already exists") from exc
        self.session.refresh(row)
        return _to_user(row)

    def find_by_id(self, user_id: int) -> Optional[User]:
        row = self.session.get(UserModel, user_id)
        return _to_user(row) if row is not None else None

    def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(UserModel).where(UserModel.email == email)
        row = self.session.exec(stmt).first()
        return _to_user(row) if row is not None else None

    def update(self, user: User) -> User:
        row = self.session.get(UserModel, user.id)
        row.name = user.name
        row.phone_number = user.phone_number
        row.address_line1 = user.address.line1
        row.address_town = user.address.town
        row.address_postcode = user.address.postcode
        row.updated_timestamp = user.updated_timestamp
        self.session.add(row)
        self.session.flush()
        self.session.refresh(row)
        return _to_user(row)

    def delete(self, user_id: int) -> None:
        row = self.session.get(UserModel, user_id)
        if row is not None:
            self.session.delete(row)
            self.session.flush()


class SqlStorage:
    """Groups the SQL stores so they share one session and one commit."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.accounts = SqlAccountStore(session)
        self.transactions = SqlTransactionStore(session)
        self.users = SqlUserStore(session)

    def _begin_write(self) -> None:
        connection = self.session.connection()
        if connection.dialect.name != "sqlite":
            return
        # SQLite ignores FOR UPDATE, so take the database write lock before the
        # re-read. Other writers wait on the busy timeout.
        if not connection.connection.dbapi_connection.in_transaction:
            connection.exec_driver_sql("BEGIN IMMEDIATE")

    @contextmanager
    def atomic(self, account_id: UUID) -> Iterator[Optional[Account]]:
        try:
            self._begin_write()
            yield self.accounts.lock(account_id)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()
