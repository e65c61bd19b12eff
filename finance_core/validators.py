"""Validation helpers shared across the finance tracker services.

Field validators raise :class:`ValidationError` with a human readable message.
The payload validators (``validate_category``, ``validate_transaction`` and
``validate_budget``) run every field check and return a :class:`Validated`
result instead, so callers see all rejected fields at once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Dict, Generic, Iterable, Mapping, Optional, Sequence, Tuple, TypeVar

from .exceptions import FieldError, ValidationError
from .models import TRANSACTION_TYPES

T = TypeVar("T")

AMOUNT_PATTERN = re.compile(r"^\d+(\.\d{1,2})?$")
# Largest value a decimal(10,2) column holds.
MAX_AMOUNT = Decimal("99999999.99")
MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

NAME_MAX_LENGTH = 50
ICON_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200

INVALID_CATEGORY = "Invalid category data"
INVALID_TRANSACTION = "Invalid transaction data"
INVALID_BUDGET = "Invalid budget data"


@dataclass(frozen=True)
class Validated(Generic[T]):
    """Outcome of validating a payload: either a value or the field errors."""

    value: Optional[T] = None
    errors: Tuple[FieldError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def unwrap(self, message: str) -> T:
        """Return the value or raise a ValidationError carrying every field error."""
        if self.errors:
            raise ValidationError(message, self.errors)
        if self.value is None:
            raise ValidationError(message)
        return self.value


def _quantize_two_decimals(amount: Decimal) -> Decimal:
    """Round the amount to two decimal places using HALF_UP rounding."""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_amount(raw: object, field: str, *, allow_zero: bool = True) -> Decimal:
    """Convert a currency amount such as ``"45.5"`` to a two-decimal Decimal."""
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float, Decimal)):
        raise ValidationError(f"{field} must be a decimal string")
    text = str(raw).strip()
    if not AMOUNT_PATTERN.fullmatch(text):
        raise ValidationError(f"{field} must be a non-negative amount with at most two decimals")
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:  # pragma: no cover - the pattern rules this out
        raise ValidationError(f"{field} must be a numeric value") from exc

    if not allow_zero and amount <= 0:
        raise ValidationError(f"{field} must be greater than zero")
    if amount > MAX_AMOUNT:
        raise ValidationError(f"{field} must not exceed {MAX_AMOUNT}")

    return _quantize_two_decimals(amount)


def validate_required_str(value: object, field: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be empty")
    if len(trimmed) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return trimmed


def validate_enum(value: object, field: str, allowed: Iterable[str]) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    canonical = value.strip().lower()
    if canonical not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(allowed))}")
    return canonical


def validate_color(value: object, field: str) -> str:
    if not isinstance(value, str) or not COLOR_PATTERN.fullmatch(value.strip()):
        raise ValidationError(f"{field} must be a hex color such as #FB923C")
    return value.strip().upper()


def validate_month(value: object, field: str) -> str:
    if not isinstance(value, str) or not MONTH_PATTERN.fullmatch(value.strip()):
        raise ValidationError(f"{field} must use the YYYY-MM format")
    return value.strip()


def validate_date(value: object, field: str) -> date:
    """Accept a date, a datetime, or an ISO 8601 date/datetime string.

    Datetimes keep the calendar date they were written in; no timezone
    conversion is applied, since a transaction date is an economic date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be an ISO 8601 date")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError as exc:
        raise ValidationError(f"{field} must be an ISO 8601 date") from exc


def parse_optional_date(value: Optional[str], field: str) -> Optional[date]:
    """Parse an optional query parameter; blank values mean no filter."""
    if value is None or not value.strip():
        return None
    return validate_date(value, field)


def parse_optional_month(value: Optional[str], field: str) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return validate_month(value, field)


Rule = Tuple[str, str, Callable[[object, str], Any]]


def _collect(payload: object, rules: Sequence[Rule], *, partial: bool = False) -> Validated[Dict[str, Any]]:
    if not isinstance(payload, Mapping):
        return Validated(errors=(FieldError("body", "must be a JSON object"),))

    data: Dict[str, Any] = {}
    errors = []
    for wire_name, attribute, check in rules:
        if partial and wire_name not in payload:
            continue
        try:
            data[attribute] = check(payload.get(wire_name), wire_name)
        except ValidationError as exc:
            errors.append(FieldError(wire_name, exc.message))

    if errors:
        return Validated(errors=tuple(errors))
    return Validated(value=data)


CATEGORY_RULES: Sequence[Rule] = (
    ("name", "name", lambda raw, field: validate_required_str(raw, field, NAME_MAX_LENGTH)),
    ("icon", "icon", lambda raw, field: validate_required_str(raw, field, ICON_MAX_LENGTH)),
    ("color", "color", validate_color),
)

TRANSACTION_RULES: Sequence[Rule] = (
    ("amount", "amount", parse_amount),
    (
        "description",
        "description",
        lambda raw, field: validate_required_str(raw, field, DESCRIPTION_MAX_LENGTH),
    ),
    ("categoryId", "category_id", lambda raw, field: validate_required_str(raw, field, 64)),
    ("type", "type", lambda raw, field: validate_enum(raw, field, TRANSACTION_TYPES)),
    ("date", "date", validate_date),
)

BUDGET_RULES: Sequence[Rule] = (
    ("categoryId", "category_id", lambda raw, field: validate_required_str(raw, field, 64)),
    ("amount", "amount", lambda raw, field: parse_amount(raw, field, allow_zero=False)),
    ("month", "month", validate_month),
)


def validate_category(payload: object) -> Validated[Dict[str, Any]]:
    return _collect(payload, CATEGORY_RULES)


def validate_transaction(payload: object) -> Validated[Dict[str, Any]]:
    return _collect(payload, TRANSACTION_RULES)


def validate_budget(payload: object, *, partial: bool = False) -> Validated[Dict[str, Any]]:
    """Validate a budget payload; ``partial`` checks only the fields present."""
    return _collect(payload, BUDGET_RULES, partial=partial)
