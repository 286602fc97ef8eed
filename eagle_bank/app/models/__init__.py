from .db import AccountRow as AccountModel
from .db import TransactionRow as TransactionModel
from .db import UserRow as UserModel
from .domain import (
    Account,
    AccountType,
    Address,
    Ownership,
    OwnershipStatus,
    Transaction,
    TransactionType,
    User,
)
from .schemas import (
    AccountCreate,
    AccountResponse,
    AccountUpdate,
    LoginRequest,
    TokenResponse,
    TransactionCreate,
    TransactionResponse,
    UserCreate,
    UserResponse,
    UserUpdate,
)

__all__ = [
    "Account",
    "AccountType",
    "Address",
    "Ownership",
    "OwnershipStatus",
    "Transaction",
    "TransactionType",
    "User",
    "AccountCreate",
    "AccountResponse",
    "AccountUpdate",
    "LoginRequest",
    "TokenResponse",
    "TransactionCreate",
    "TransactionResponse",
    "UserCreate",
    "UserResponse",
    "UserUpdate",
    "AccountModel",
    "TransactionModel",
    "UserModel",
]
