from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, BeforeValidator, Field, field_validator

from ..core.config import get_settings
from .domain import Account, AccountType, Transaction, TransactionType, User

CENT = Decimal("0.01")


def _parse_account_type(value: object) -> object:
    # Clients send "SAVINGS" as often as "savings".
    if isinstance(value, str):
        return value.strip().lower()
    return value


AccountTypeField = Annotated[AccountType, BeforeValidator(_parse_account_type)]


class AccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Display name of the account")
    account_type: AccountTypeField


class AccountUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    account_type: AccountTypeField


class AccountResponse(BaseModel):
    account_number: str
    sort_code: str
    name: str
    account_type: AccountType
    balance: Decimal
    currency: str
    created_timestamp: datetime
    updated_timestamp: datetime

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        return cls(
            account_number=account.account_number,
            sort_code=account.sort_code,
            name=account.name,
            account_type=account.account_type,
            balance=account.balance,
            currency=account.currency,
            created_timestamp=account.created_timestamp,
            updated_timestamp=account.updated_timestamp,
        )


class TransactionCreate(BaseModel):
    amount: Decimal = Field(..., description="Amount in major units with at most two decimals")
    currency: str = Field(..., pattern=r"^[A-Z]{3}$")
    type: str = Field(..., min_length=1, description="Either 'deposit' or 'withdrawal'")
    reference: Optional[str] = Field(default=None, max_length=255)

    @field_validator("amount")
    @classmethod
    def _check_amount(cls, value: Decimal) -> Decimal:
        ceiling = get_settings().max_transaction_amount
        if value <= 0:
            raise ValueError("Amount must be greater than 0.00.")
        if value > ceiling:
            raise ValueError(f"Amount cannot exceed {ceiling}.")
        if value != value.quantize(CENT):
            raise ValueError("Amount must have at most two decimal places.")
        return value.quantize(CENT)


class TransactionResponse(BaseModel):
    id: str
    amount: Decimal
    currency: str
    type: TransactionType
    reference: Optional[str] = None
    user_id: int
    created_timestamp: datetime

    @classmethod
    def from_domain(cls, transaction: Transaction) -> "TransactionResponse":
        return cls(
            id=transaction.id,
            amount=transaction.amount,
            currency=transaction.currency,
            type=transaction.type,
            reference=transaction.reference,
            user_id=transaction.user_id,
            created_timestamp=transaction.created_timestamp,
        )


class AddressSchema(BaseModel):
    line1: Optional[str] = None
    town: Optional[str] = None
    postcode: Optional[str] = None


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone_number: str = Field(..., pattern=r"^\+?[0-9]{7,15}$")
    password: str = Field(..., min_length=8)
    address: AddressSchema = Field(default_factory=AddressSchema)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone_number: Optional[str] = Field(default=None, pattern=r"^\+?[0-9]{7,15}$")
    address: Optional[AddressSchema] = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    phone_number: str
    address: AddressSchema
    created_timestamp: datetime
    updated_timestamp: datetime

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone_number=user.phone_number,
            address=AddressSchema(
                line1=user.address.line1,
                town=user.address.town,
                postcode=user.address.postcode,
            ),
            created_timestamp=user.created_timestamp,
            updated_timestamp=user.updated_timestamp,
        )


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
