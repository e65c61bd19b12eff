"""Data models for the personal finance domain."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict

__all__ = [
    "Budget",
    "Category",
    "EXPENSE",
    "INCOME",
    "TRANSACTION_TYPES",
    "Transaction",
    "User",
    "format_amount",
    "isoformat_utc",
    "parse_datetime",
]

INCOME = "income"
EXPENSE = "expense"
TRANSACTION_TYPES = frozenset({INCOME, EXPENSE})


def isoformat_utc(dt: datetime) -> str:
    """Return an ISO 8601 string with trailing Z for UTC-aware datetimes."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    iso = dt.isoformat(timespec="seconds")
    # datetime.isoformat renders +00:00 for UTC; replace with the shorter Z form.
    return iso.replace("+00:00", "Z")


def parse_datetime(value: str) -> datetime:
    """Parse ISO 8601 datetime strings with optional trailing Z into UTC-aware datetime."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        # Treat naive datetimes as UTC to avoid accidental timezone drift.
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_amount(amount: Decimal) -> str:
    return f"{amount:.2f}"


@dataclass(frozen=True)
class User:
    id: str
    username: str
    password: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "username": self.username, "password": self.password}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(id=data["id"], username=data["username"], password=data["password"])


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    icon: str
    color: str
    user_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "color": self.color,
            "userId": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=data["id"],
            name=data["name"],
            icon=data["icon"],
            color=data["color"],
            user_id=data["userId"],
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    amount: Decimal
    description: str
    category_id: str
    type: str
    date: date
    user_id: str
    created_at: datetime

    @property
    def is_expense(self) -> bool:
        return self.type == EXPENSE

    @property
    def is_income(self) -> bool:
        return self.type == INCOME

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the transaction to JSON-friendly natives."""
        return {
            "id": self.id,
            "amount": format_amount(self.amount),
            "description": self.description,
            "categoryId": self.category_id,
            "type": self.type,
            "date": self.date.isoformat(),
            "userId": self.user_id,
            "createdAt": isoformat_utc(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Hydrate a Transaction from JSON-native data."""
        return cls(
            id=data["id"],
            amount=Decimal(str(data["amount"])),
            description=data["description"],
            category_id=data["categoryId"],
            type=data["type"],
            date=date.fromisoformat(data["date"]),
            user_id=data["userId"],
            created_at=parse_datetime(data["createdAt"]),
        )


@dataclass(frozen=True)
class Budget:
    id: str
    category_id: str
    amount: Decimal
    month: str
    user_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "categoryId": self.category_id,
            "amount": format_amount(self.amount),
            "month": self.month,
            "userId": self.user_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Budget":
        return cls(
            id=data["id"],
            category_id=data["categoryId"],
            amount=Decimal(str(data["amount"])),
            month=data["month"],
            user_id=data["userId"],
        )
