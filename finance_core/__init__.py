"""Core business logic package for the personal finance tracker."""

from .exceptions import FieldError, PersistenceError, RecordNotFoundError, ValidationError
from .models import Budget, Category, Transaction, User
from .services import DashboardService
from .storage import JSONStorage, JSONStore, MemoryStore, RecordStore, create_store

__all__ = [
    "Budget",
    "Category",
    "Transaction",
    "User",
    "DashboardService",
    "JSONStorage",
    "JSONStore",
    "MemoryStore",
    "RecordStore",
    "create_store",
    "FieldError",
    "PersistenceError",
    "RecordNotFoundError",
    "ValidationError",
]
