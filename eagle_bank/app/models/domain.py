"""Plain records passed between the stores and the services."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID


class AccountType(str, Enum):
    PERSONAL = "personal"
    BUSINESS = "business"
    SAVINGS = "savings"
    CHECKING = "checking"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class OwnershipStatus(str, Enum):
    OWNED = "owned"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Account:
    id: UUID
    user_id: int
    account_number: str
    sort_code: str
    name: str
    account_type: AccountType
    balance: Decimal
    currency: str
    created_timestamp: datetime
    updated_timestamp: datetime

    def with_changes(self, **changes) -> "Account":
        return replace(self, **changes)


@dataclass(frozen=True)
class Transaction:
    id: str
    account_id: UUID
    user_id: int
    amount: Decimal
    currency: str
    type: TransactionType
    created_timestamp: datetime
    reference: Optional[str] = None

    @property
    def signed_amount(self) -> Decimal:
        if self.type is TransactionType.WITHDRAWAL:
            return -self.amount
        return self.amount


@dataclass(frozen=True)
class Ownership:
    """Outcome of classifying a caller against an account number.

    ``account`` is only populated when ``status`` is OWNED so a forbidden
    caller never sees the record.
    """

    status: OwnershipStatus
    account: Optional[Account] = None

    @classmethod
    def owned(cls, account: Account) -> "Ownership":
        return cls(OwnershipStatus.OWNED, account)

    @classmethod
    def forbidden(cls) -> "Ownership":
        return cls(OwnershipStatus.FORBIDDEN)

    @classmethod
    def not_found(cls) -> "Ownership":
        return cls(OwnershipStatus.NOT_FOUND)


@dataclass(frozen=True)
class Address:
    line1: Optional[str] = None
    town: Optional[str] = None
    postcode: Optional[str] = None


@dataclass(frozen=True)
class User:
    id: int
    name: str
    email: str
    phone_number: str
    password_hash: str
    created_timestamp: datetime
    updated_timestamp: datetime
    address: Address = field(default_factory=Address)
