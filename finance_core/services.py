"""Dashboard aggregations over transactions, budgets and categories."""

from __future__ import annotations

import calendar
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .exceptions import FieldError, ValidationError
from .models import Budget, Category, Transaction, format_amount
from .storage import RecordStore
from .validators import validate_month

UNKNOWN_CATEGORY = "Unknown"
NEUTRAL_COLOR = "#000000"
MAX_TREND_DAYS = 366

ZERO = Decimal("0.00")


def current_month(today: date) -> str:
    return today.strftime("%Y-%m")


def month_bounds(month: str) -> Tuple[date, date]:
    """Return the first and last calendar day of a ``YYYY-MM`` month."""
    month = validate_month(month, "month")
    year, month_number = (int(part) for part in month.split("-"))
    last_day = calendar.monthrange(year, month_number)[1]
    return date(year, month_number, 1), date(year, month_number, last_day)


def _total(transactions: Iterable[Transaction]) -> Decimal:
    return sum((txn.amount for txn in transactions), start=ZERO)


def _percentage(part: Decimal, whole: Decimal) -> Decimal:
    if whole == 0:
        return Decimal("0")
    return part / whole * 100


@dataclass(frozen=True)
class BudgetProgress:
    budget: Budget
    category_name: str
    category_color: str
    spent: Decimal
    remaining: Decimal
    percentage: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.budget.to_dict(),
            "categoryName": self.category_name,
            "categoryColor": self.category_color,
            "spent": format_amount(self.spent),
            "remaining": format_amount(self.remaining),
            "percentage": float(self.percentage),
        }


@dataclass(frozen=True)
class DashboardSummary:
    month: str
    income: Decimal
    expenses: Decimal
    net_savings: Decimal
    budget_progress: List[BudgetProgress]
    transaction_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "income": format_amount(self.income),
            "expenses": format_amount(self.expenses),
            "netSavings": format_amount(self.net_savings),
            "budgetProgress": [progress.to_dict() for progress in self.budget_progress],
            "transactionCount": self.transaction_count,
        }


@dataclass(frozen=True)
class CategoryShare:
    category_id: str
    name: str
    color: str
    total: Decimal
    percentage: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categoryId": self.category_id,
            "name": self.name,
            "color": self.color,
            "total": format_amount(self.total),
            "percentage": float(self.percentage),
        }


@dataclass(frozen=True)
class DailyTotal:
    day: date
    income: Decimal
    expenses: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "income": format_amount(self.income),
            "expenses": format_amount(self.expenses),
        }


class DashboardService:
    """Read-only aggregations for the dashboard.

    Every method is a pure function of the store's contents at call time;
    ``clock`` supplies today's date when no month is requested.
    """

    def __init__(self, store: RecordStore, clock: Callable[[], date] = date.today) -> None:
        self._store = store
        self._clock = clock

    def resolve_month(self, month: Optional[str]) -> str:
        if not month:
            return current_month(self._clock())
        try:
            return validate_month(month, "month")
        except ValidationError as exc:
            raise ValidationError("Invalid query parameters", [FieldError("month", exc.message)]) from exc

    def summary(self, user_id: str, month: Optional[str] = None) -> DashboardSummary:
        """Income, expenses, net savings and per-budget progress for one month."""
        month = self.resolve_month(month)
        start, end = month_bounds(month)
        transactions = self._store.get_transactions(user_id, start, end)

        income = _total(txn for txn in transactions if txn.is_income)
        expenses = _total(txn for txn in transactions if txn.is_expense)

        budgets = self._store.get_budgets(user_id, month)
        categories = {category.id: category for category in self._store.get_categories(user_id)}
        progress = [self._budget_progress(budget, categories, transactions) for budget in budgets]

        return DashboardSummary(
            month=month,
            income=income,
            expenses=expenses,
            net_savings=income - expenses,
            budget_progress=progress,
            transaction_count=len(transactions),
        )

    def category_breakdown(self, user_id: str, month: Optional[str] = None) -> List[CategoryShare]:
        """Expense totals per category, largest first, with their share of all expenses."""
        month = self.resolve_month(month)
        start, end = month_bounds(month)
        expenses = [
            txn for txn in self._store.get_transactions(user_id, start, end) if txn.is_expense
        ]
        total_expenses = _total(expenses)
        if total_expenses == 0:
            return []

        by_category: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for txn in expenses:
            by_category[txn.category_id] += txn.amount

        shares = []
        for category_id, total in by_category.items():
            if total == 0:
                continue
            category = self._store.get_category(category_id)
            shares.append(
                CategoryShare(
                    category_id=category_id,
                    name=category.name if category else UNKNOWN_CATEGORY,
                    color=category.color if category else NEUTRAL_COLOR,
                    total=total,
                    percentage=_percentage(total, total_expenses),
                )
            )
        return sorted(shares, key=lambda share: share.total, reverse=True)

    def daily_totals(self, user_id: str, days: int = 7) -> List[DailyTotal]:
        """Income and expense totals for each of the last ``days`` days, oldest first."""
        if not 1 <= days <= MAX_TREND_DAYS:
            raise ValidationError(
                "Invalid query parameters",
                [FieldError("days", f"days must be between 1 and {MAX_TREND_DAYS}")],
            )
        today = self._clock()
        start = today - timedelta(days=days - 1)
        income: Dict[date, Decimal] = defaultdict(lambda: ZERO)
        expenses: Dict[date, Decimal] = defaultdict(lambda: ZERO)
        for txn in self._store.get_transactions(user_id, start, today):
            bucket = income if txn.is_income else expenses
            bucket[txn.date] += txn.amount

        return [
            DailyTotal(day=day, income=income[day], expenses=expenses[day])
            for day in (start + timedelta(days=offset) for offset in range(days))
        ]

    @staticmethod
    def _budget_progress(
        budget: Budget,
        categories: Dict[str, Category],
        transactions: List[Transaction],
    ) -> BudgetProgress:
        category = categories.get(budget.category_id)
        spent = _total(
            txn for txn in transactions
            if txn.is_expense and txn.category_id == budget.category_id
        )
        return BudgetProgress(
            budget=budget,
            category_name=category.name if category else UNKNOWN_CATEGORY,
            category_color=category.color if category else NEUTRAL_COLOR,
            spent=spent,
            remaining=budget.amount - spent,
            percentage=_percentage(spent, budget.amount),
        )
