from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Optional

from ..core.errors import (
    AccountNotFoundError,
    CurrencyMismatchError,
    InsufficientFundsError,
    InvalidTransactionTypeError,
)
from ..models import Account, Transaction, TransactionCreate, TransactionType
from .ownership import OwnershipResolver
from .stores import Storage


logger = logging.getLogger(__name__)

TRANSACTION_ID_PREFIX = "tan-"


def generate_transaction_id() -> str:
    return TRANSACTION_ID_PREFIX + uuid.uuid4().hex


def parse_transaction_type(value: str) -> TransactionType:
    try:
        return TransactionType(value)
    except ValueError as exc:
        raise InvalidTransactionTypeError(
            f"Invalid transaction type: {value!r}, expected 'deposit' or 'withdrawal'"
        ) from exc


def apply_amount(balance: Decimal, amount: Decimal, tx_type: TransactionType) -> Decimal:
    """Return the balance after applying ``amount``; withdrawals never go negative."""
    if tx_type is TransactionType.DEPOSIT:
        return balance + amount
    if balance < amount:
        raise InsufficientFundsError(
            f"Insufficient funds: balance {balance} is less than {amount}"
        )
    return balance - amount


class TransactionProcessor:
    """Applies deposits and withdrawals to a single owned account.

    The balance write and the transaction record are made inside
    ``Storage.atomic`` for the account, which serializes concurrent requests
    against the same account and commits or discards both writes together.
    """

    def __init__(self, storage: Storage, resolver: Optional[OwnershipResolver] = None) -> None:
        self.storage = storage
        self.resolver = resolver or OwnershipResolver(storage.accounts)

    def process(
        self,
        account_number: str,
        user_id: int,
        request: TransactionCreate,
    ) -> Transaction:
        account = self.resolver.require_owned(account_number, user_id)
        tx_type = parse_transaction_type(request.type)

        with self.storage.atomic(account.id) as locked:
            if locked is None:
                raise AccountNotFoundError(f"Account with number {account_number} not found")
            transaction = self._apply(locked, user_id, tx_type, request)

        logger.info(
            "transaction.processed",
            extra={
                "account_number": account_number,
                "transaction_id": transaction.id,
                "type": tx_type.value,
                "amount": str(transaction.amount),
            },
        )
        return transaction

    def _apply(
        self,
        account: Account,
        user_id: int,
        tx_type: TransactionType,
        request: TransactionCreate,
    ) -> Transaction:
        if request.currency != account.currency:
            raise CurrencyMismatchError(
                f"Currency {request.currency} does not match account currency {account.currency}"
            )

        try:
            new_balance = apply_amount(account.balance, request.amount, tx_type)
        except InsufficientFundsError:
            logger.info(
                "transaction.rejected",
                extra={
                    "account_number": account.account_number,
                    "reason": "insufficient_funds",
                    "amount": str(request.amount),
                },
            )
            raise

        now = datetime.now(UTC)
        self.storage.accounts.replace_balance(
            account.id, new_balance, now, expected_balance=account.balance
        )
        return self.storage.transactions.insert(
            Transaction(
                id=generate_transaction_id(),
                account_id=account.id,
                user_id=user_id,
                amount=request.amount,
                currency=request.currency,
                type=tx_type,
                reference=request.reference,
                created_timestamp=now,
            )
        )
