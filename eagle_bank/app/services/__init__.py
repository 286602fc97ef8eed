from .accounts import AccountService
from .memory import InMemoryStorage
from .ownership import OwnershipResolver
from .processor import TransactionProcessor
from .repository import SqlStorage
from .stores import AccountStore, Storage, TransactionStore, UserStore
from .users import UserService

__all__ = [
    "AccountService",
    "AccountStore",
    "InMemoryStorage",
    "OwnershipResolver",
    "SqlStorage",
    "Storage",
    "TransactionProcessor",
    "TransactionStore",
    "UserService",
    "UserStore",
]
