from __future__ import annotations
from datetime import datetime, UTC
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4
from sqlmodel import Field, SQLModel

class UserRow(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    phone_number: str
    address_line1: Optional[str] = None
    address_town: Optional[str] = None
    address_postcode: Optional[str] = None
    password_hash: str
    created_timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

class AccountRow(SQLModel, table=True):
    __tablename__ = "accounts"

    id: UUID = Field(default_factory=uuid4, primary_key=True, index=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    account_number: str = Field(unique=True, index=True, max_length=8)
    sort_code: str
    name: str
    account_type: str
    balance: Decimal = Field(default=Decimal("0.00"), max_digits=19, decimal_places=2)
    currency: str
    created_timestamp: datetime
    updated_timestamp: datetime

class TransactionRow(SQLModel, table=True):
    __tablename__ = "transactions"

    seq: Optional[int] = Field(default=None, primary_key=True)
    id: str = Field(unique=True, index=True)
    account_id: UUID = Field(index=True)
    user_id: int
    amount: Decimal = Field(max_digits=19, decimal_places=2)
    currency: str
    type: str
    reference: Optional[str] = None
    created_timestamp: datetime = Field(index=True)
