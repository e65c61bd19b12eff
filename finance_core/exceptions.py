"""Domain-specific exceptions for the finance tracker core services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class FieldError:
    """A single rejected field in a request payload."""

    field: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"field": self.field, "message": self.message}


class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""

    def __init__(self, message: str, errors: Optional[Iterable[FieldError]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.errors: List[FieldError] = list(errors or [])

    def details(self) -> List[Dict[str, Any]]:
        return [error.to_dict() for error in self.errors]


class RecordNotFoundError(LookupError):
    """Raised when a category, transaction or budget cannot be located."""


class PersistenceError(IOError):
    """Raised when the persistence layer encounters unrecoverable issues."""
