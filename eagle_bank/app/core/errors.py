"""Exception hierarchy shared by the services and the HTTP layer.

Every error carries the status code it maps to; the API layer translates
them one-to-one and the services never catch them.
"""


class BankError(Exception):
    status_code = 500


class AccountNotFoundError(BankError):
    """Raised when no account carries the requested account number."""

    status_code = 404


class AccountForbiddenError(BankError):
    """Raised when the account exists but belongs to another user."""

    status_code = 403


class TransactionNotFoundError(BankError):
    """Raised when a transaction id is unknown for the named account."""

    status_code = 404


class UserNotFoundError(BankError):
    status_code = 404


class UserForbiddenError(BankError):
    status_code = 403


class CurrencyMismatchError(BankError):
    """Raised when a transaction currency differs from the account currency."""

    status_code = 400


class InvalidTransactionTypeError(BankError):
    status_code = 400


class InsufficientFundsError(BankError):
    """Raised when a withdrawal would drop the balance below zero."""

    status_code = 422


class ConflictError(BankError):
    """Raised when an action would violate a state invariant."""

    status_code = 409


class ConcurrentModificationError(ConflictError):
    """Raised when a balance changed underneath a compare-and-swap write."""


class UnauthenticatedError(BankError):
    status_code = 401
