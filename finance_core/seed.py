"""Default records loaded into a fresh store."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List

from .models import EXPENSE, INCOME, Budget, Category, Transaction, User

DEFAULT_USER_ID = "default-user-id"

_CATEGORY_ROWS = [
    ("cat-1", "Food & Dining", "fas fa-utensils", "#FB923C"),
    ("cat-2", "Transportation", "fas fa-gas-pump", "#3B82F6"),
    ("cat-3", "Entertainment", "fas fa-film", "#8B5CF6"),
    ("cat-4", "Utilities", "fas fa-bolt", "#10B981"),
    ("cat-5", "Shopping", "fas fa-shopping-bag", "#EC4899"),
    ("cat-6", "Healthcare", "fas fa-heart", "#F59E0B"),
    ("cat-7", "Income", "fas fa-briefcase", "#10B981"),
]

_TRANSACTION_ROWS = [
    ("txn-1", "2500.00", "Salary", "cat-7", INCOME, date(2025, 8, 15)),
    ("txn-2", "45.50", "Lunch at Italian Restaurant", "cat-1", EXPENSE, date(2025, 8, 20)),
    ("txn-3", "120.00", "Gas Station Fill-up", "cat-2", EXPENSE, date(2025, 8, 18)),
    ("txn-4", "25.99", "Netflix Subscription", "cat-3", EXPENSE, date(2025, 8, 1)),
    ("txn-5", "85.40", "Electricity Bill", "cat-4", EXPENSE, date(2025, 8, 5)),
]

_BUDGET_ROWS = [
    ("budget-1", "cat-1", "300.00", "2025-08"),
    ("budget-2", "cat-2", "200.00", "2025-08"),
    ("budget-3", "cat-3", "100.00", "2025-08"),
]


def default_user(user_id: str = DEFAULT_USER_ID) -> User:
    return User(id=user_id, username="demo", password="demo123")


def default_categories(user_id: str = DEFAULT_USER_ID) -> List[Category]:
    return [
        Category(id=cat_id, name=name, icon=icon, color=color, user_id=user_id)
        for cat_id, name, icon, color in _CATEGORY_ROWS
    ]


def sample_transactions(user_id: str = DEFAULT_USER_ID) -> List[Transaction]:
    return [
        Transaction(
            id=txn_id,
            amount=Decimal(amount),
            description=description,
            category_id=category_id,
            type=kind,
            date=day,
            user_id=user_id,
            created_at=datetime(day.year, day.month, day.day, tzinfo=timezone.utc),
        )
        for txn_id, amount, description, category_id, kind, day in _TRANSACTION_ROWS
    ]


def sample_budgets(user_id: str = DEFAULT_USER_ID) -> List[Budget]:
    return [
        Budget(id=budget_id, category_id=category_id, amount=Decimal(amount), month=month, user_id=user_id)
        for budget_id, category_id, amount, month in _BUDGET_ROWS
    ]
