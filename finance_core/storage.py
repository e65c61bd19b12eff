"""Record stores for users, categories, transactions and budgets."""

from __future__ import annotations

import json
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
from uuid import uuid4

from . import seed
from .config import Config
from .exceptions import FieldError, PersistenceError, ValidationError
from .logging_config import get_logger
from .models import Budget, Category, Transaction, User
from .validators import INVALID_BUDGET, INVALID_CATEGORY, INVALID_TRANSACTION, validate_date

logger = get_logger("storage")

BUDGET_FIELDS = ("category_id", "amount", "month")
COLLECTIONS = ("users", "categories", "transactions", "budgets")


class JSONStorage:
    """Simple file-based JSON storage with crash-safe writes."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = base_path
        self._base_path.mkdir(parents=True, exist_ok=True)

    def load(self, resource: str) -> List[Dict[str, Any]]:
        path = self._base_path / resource
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupted JSON data in {path}") from exc
        except OSError as exc:
            raise PersistenceError(f"Unable to read from {path}") from exc

        if not isinstance(payload, list):
            raise PersistenceError(f"Expected list payload in {path}")
        return payload

    def save(self, resource: str, records: Iterable[Dict[str, Any]]) -> None:
        path = self._base_path / resource
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(list(records), handle, indent=2)
                handle.flush()
            # Use replace for atomic move on POSIX; ensures crash-safe persistence.
            temp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write to {path}") from exc

    @property
    def base_path(self) -> Path:
        return self._base_path


class RecordStore(ABC):
    """Storage contract shared by the in-memory and file-backed stores.

    Stores own identifier assignment: every ``create_*`` call returns a record
    with a fresh id and callers never supply one. Lookups that miss return
    ``None`` rather than raising.
    """

    @abstractmethod
    def create_user(self, data: Mapping[str, Any]) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def get_categories(self, user_id: str) -> List[Category]: ...

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]: ...

    @abstractmethod
    def create_category(self, user_id: str, data: Mapping[str, Any]) -> Category: ...

    @abstractmethod
    def get_transactions(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]: ...

    @abstractmethod
    def create_transaction(self, user_id: str, data: Mapping[str, Any]) -> Transaction: ...

    @abstractmethod
    def get_budgets(self, user_id: str, month: Optional[str] = None) -> List[Budget]: ...

    @abstractmethod
    def create_budget(self, user_id: str, data: Mapping[str, Any]) -> Budget: ...

    @abstractmethod
    def update_budget(self, budget_id: str, changes: Mapping[str, Any]) -> Optional[Budget]: ...

    @abstractmethod
    def bootstrap(
        self,
        *,
        users: Iterable[User] = (),
        categories: Iterable[Category] = (),
        transactions: Iterable[Transaction] = (),
        budgets: Iterable[Budget] = (),
    ) -> None:
        """Insert pre-built records with their ids intact (seeding only)."""

    @abstractmethod
    def is_empty(self) -> bool: ...


class MemoryStore(RecordStore):
    """Dictionary-backed store; insertion order doubles as iteration order."""

    def __init__(self, *, now: Optional[Callable[[], datetime]] = None) -> None:
        self._lock = threading.RLock()
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._users: Dict[str, User] = {}
        self._categories: Dict[str, Category] = {}
        self._transactions: Dict[str, Transaction] = {}
        self._budgets: Dict[str, Budget] = {}

    # Users ----------------------------------------------------------------
    def create_user(self, data: Mapping[str, Any]) -> User:
        with self._lock:
            username = data["username"]
            if self.get_user_by_username(username) is not None:
                raise ValidationError(
                    "Invalid user data", [FieldError("username", "Username is already taken")]
                )
            user = User(id=self._new_id(), username=username, password=data["password"])
            self._commit("users", user)
        logger.debug("Created user %s", user.id)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return next((user for user in self._users.values() if user.username == username), None)

    # Categories -----------------------------------------------------------
    def get_categories(self, user_id: str) -> List[Category]:
        with self._lock:
            return [category for category in self._categories.values() if category.user_id == user_id]

    def get_category(self, category_id: str) -> Optional[Category]:
        with self._lock:
            return self._categories.get(category_id)

    def create_category(self, user_id: str, data: Mapping[str, Any]) -> Category:
        with self._lock:
            canonical = data["name"].strip().lower()
            for category in self.get_categories(user_id):
                if category.name.lower() == canonical:
                    raise ValidationError(
                        INVALID_CATEGORY, [FieldError("name", "Category name must be unique")]
                    )
            category = Category(
                id=self._new_id(),
                name=data["name"],
                icon=data["icon"],
                color=data["color"],
                user_id=user_id,
            )
            self._commit("categories", category)
        logger.debug("Created category %s (%s)", category.id, category.name)
        return category

    # Transactions ---------------------------------------------------------
    def get_transactions(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[Transaction]:
        with self._lock:
            records = [txn for txn in self._transactions.values() if txn.user_id == user_id]
        if start_date is not None:
            records = [txn for txn in records if txn.date >= start_date]
        if end_date is not None:
            records = [txn for txn in records if txn.date <= end_date]
        # Most recent first; same-day ties fall back to creation time.
        return sorted(records, key=lambda txn: (txn.date, txn.created_at), reverse=True)

    def create_transaction(self, user_id: str, data: Mapping[str, Any]) -> Transaction:
        with self._lock:
            self._require_category(user_id, data["category_id"], INVALID_TRANSACTION)
            transaction = Transaction(
                id=self._new_id(),
                amount=Decimal(str(data["amount"])),
                description=data["description"],
                category_id=data["category_id"],
                type=data["type"],
                date=validate_date(data["date"], "date"),
                user_id=user_id,
                created_at=self._now(),
            )
            self._commit("transactions", transaction)
        logger.debug("Created %s transaction %s", transaction.type, transaction.id)
        return transaction

    # Budgets --------------------------------------------------------------
    def get_budgets(self, user_id: str, month: Optional[str] = None) -> List[Budget]:
        with self._lock:
            budgets = [budget for budget in self._budgets.values() if budget.user_id == user_id]
        if month:
            budgets = [budget for budget in budgets if budget.month == month]
        return budgets

    def create_budget(self, user_id: str, data: Mapping[str, Any]) -> Budget:
        with self._lock:
            self._require_category(user_id, data["category_id"], INVALID_BUDGET)
            self._ensure_unique_budget(user_id, data["category_id"], data["month"])
            budget = Budget(
                id=self._new_id(),
                category_id=data["category_id"],
                amount=Decimal(str(data["amount"])),
                month=data["month"],
                user_id=user_id,
            )
            self._commit("budgets", budget)
        logger.debug("Created budget %s for %s", budget.id, budget.month)
        return budget

    def update_budget(self, budget_id: str, changes: Mapping[str, Any]) -> Optional[Budget]:
        with self._lock:
            existing = self._budgets.get(budget_id)
            if existing is None:
                return None
            patch = {key: changes[key] for key in BUDGET_FIELDS if key in changes}
            if "amount" in patch:
                patch["amount"] = Decimal(str(patch["amount"]))
            updated = replace(existing, **patch)
            if updated.category_id != existing.category_id:
                self._require_category(updated.user_id, updated.category_id, INVALID_BUDGET)
            self._ensure_unique_budget(
                updated.user_id, updated.category_id, updated.month, exclude=budget_id
            )
            self._commit("budgets", updated)
        logger.debug("Updated budget %s", budget_id)
        return updated

    # Seeding --------------------------------------------------------------
    def bootstrap(
        self,
        *,
        users: Iterable[User] = (),
        categories: Iterable[Category] = (),
        transactions: Iterable[Transaction] = (),
        budgets: Iterable[Budget] = (),
    ) -> None:
        with self._lock:
            snapshot = {name: dict(self._collection(name)) for name in COLLECTIONS}
            self._users.update((user.id, user) for user in users)
            self._categories.update((category.id, category) for category in categories)
            self._transactions.update((txn.id, txn) for txn in transactions)
            self._budgets.update((budget.id, budget) for budget in budgets)
            try:
                for collection in COLLECTIONS:
                    self._persist(collection)
            except PersistenceError:
                for name, records in snapshot.items():
                    setattr(self, f"_{name}", records)
                raise

    def is_empty(self) -> bool:
        with self._lock:
            return not (self._users or self._categories or self._transactions or self._budgets)

    # Internal helpers -----------------------------------------------------
    def _new_id(self) -> str:
        collections = (self._users, self._categories, self._transactions, self._budgets)
        new_id = str(uuid4())
        # Ids are never reused, even across collections.
        while any(new_id in records for records in collections):
            new_id = str(uuid4())
        return new_id

    def _require_category(self, user_id: str, category_id: str, message: str) -> None:
        category = self._categories.get(category_id)
        if category is None or category.user_id != user_id:
            raise ValidationError(
                message, [FieldError("categoryId", f"Category {category_id} not found")]
            )

    def _ensure_unique_budget(
        self, user_id: str, category_id: str, month: str, *, exclude: Optional[str] = None
    ) -> None:
        for budget in self._budgets.values():
            if budget.id == exclude:
                continue
            if (budget.user_id, budget.category_id, budget.month) == (user_id, category_id, month):
                raise ValidationError(
                    INVALID_BUDGET,
                    [FieldError("month", "A budget for this category and month already exists")],
                )

    def _collection(self, name: str) -> Dict[str, Any]:
        return getattr(self, f"_{name}")

    def _commit(self, collection: str, record: Any) -> None:
        """Store ``record`` and persist it; a failed save leaves the collection unchanged."""
        records = self._collection(collection)
        previous = records.get(record.id)
        records[record.id] = record
        try:
            self._persist(collection)
        except PersistenceError:
            if previous is None:
                del records[record.id]
            else:
                records[record.id] = previous
            raise

    def _persist(self, collection: str) -> None:
        """Hook for durable subclasses; the in-memory store keeps nothing else."""


class JSONStore(MemoryStore):
    """MemoryStore that writes each collection to ``<collection>.json`` after every change."""

    RESOURCES = {
        "users": ("users.json", User),
        "categories": ("categories.json", Category),
        "transactions": ("transactions.json", Transaction),
        "budgets": ("budgets.json", Budget),
    }

    def __init__(self, storage: JSONStorage, *, now: Optional[Callable[[], datetime]] = None) -> None:
        super().__init__(now=now)
        self._storage = storage
        self.load()

    def load(self) -> None:
        """Hydrate the in-memory collections from disk."""
        with self._lock:
            for collection, (resource, model) in self.RESOURCES.items():
                try:
                    records = {
                        payload["id"]: model.from_dict(payload)
                        for payload in self._storage.load(resource)
                    }
                except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
                    raise PersistenceError(f"Malformed record in {resource}") from exc
                setattr(self, f"_{collection}", records)

    def _persist(self, collection: str) -> None:
        resource, _ = self.RESOURCES[collection]
        records = self._collection(collection).values()
        self._storage.save(resource, [record.to_dict() for record in records])


def seed_default_data(store: RecordStore, user_id: str = seed.DEFAULT_USER_ID) -> None:
    """Load the demo user with its categories, transactions and budgets."""
    store.bootstrap(
        users=[seed.default_user(user_id)],
        categories=seed.default_categories(user_id),
        transactions=seed.sample_transactions(user_id),
        budgets=seed.sample_budgets(user_id),
    )
    logger.info("Seeded default data for user %s", user_id)


def create_store(config: Config) -> RecordStore:
    """Build the configured store; an empty store gets the default user (and samples)."""
    store: RecordStore
    if config.STORE_BACKEND == "json":
        store = JSONStore(JSONStorage(config.DATA_DIR))
    else:
        store = MemoryStore()

    if store.is_empty():
        if config.SEED_DATA:
            seed_default_data(store, config.DEFAULT_USER_ID)
        else:
            store.bootstrap(users=[seed.default_user(config.DEFAULT_USER_ID)])
    logger.info("Using %s store", config.STORE_BACKEND)
    return store
