"""Tests for the in-memory and JSON record stores."""

from __future__ import annotations

import json
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from finance_core.config import Config
from finance_core.exceptions import PersistenceError, ValidationError
from finance_core.seed import DEFAULT_USER_ID
from finance_core.storage import JSONStorage, JSONStore, MemoryStore, create_store, seed_default_data

NOW = datetime(2025, 9, 1, 8, 30, tzinfo=timezone.utc)


def _expense(category_id="cat-1", amount="10.00", day=date(2025, 8, 10)):
    return {
        "amount": Decimal(amount),
        "description": "Coffee",
        "category_id": category_id,
        "type": "expense",
        "date": day,
    }


def test_created_ids_are_unique(store, user_id):
    ids = {store.create_transaction(user_id, _expense()).id for _ in range(50)}
    ids.update(txn.id for txn in store.get_transactions(user_id))

    assert len(ids) == 55


def test_transactions_filter_inclusively_and_sort_newest_first(store, user_id):
    transactions = store.get_transactions(user_id, date(2025, 8, 5), date(2025, 8, 18))

    assert [txn.id for txn in transactions] == ["txn-3", "txn-1", "txn-5"]


def test_transactions_without_filters_are_sorted_by_date_descending(store, user_id):
    dates = [txn.date for txn in store.get_transactions(user_id)]

    assert dates == sorted(dates, reverse=True)
    assert len(dates) == 5


def test_transactions_of_other_users_are_hidden(store):
    assert store.get_transactions("someone-else") == []


def test_create_transaction_stamps_creation_time_and_normalises_date(user_id):
    store = MemoryStore(now=lambda: NOW)
    seed_default_data(store)

    txn = store.create_transaction(user_id, {**_expense(), "date": "2025-08-31T22:00:00Z"})

    assert txn.created_at == NOW
    assert txn.date == date(2025, 8, 31)
    assert txn.user_id == user_id
    assert store.get_transactions(user_id)[0].id == txn.id


def test_same_day_transactions_list_most_recent_first(user_id):
    stamps = iter([NOW, NOW.replace(hour=9)])
    store = MemoryStore(now=lambda: next(stamps))
    seed_default_data(store)

    first = store.create_transaction(user_id, _expense(day=date(2025, 9, 1)))
    second = store.create_transaction(user_id, _expense(day=date(2025, 9, 1)))

    listed = store.get_transactions(user_id, date(2025, 9, 1), date(2025, 9, 1))
    assert [txn.id for txn in listed] == [second.id, first.id]


def test_transaction_requires_existing_category(store, user_id):
    with pytest.raises(ValidationError) as excinfo:
        store.create_transaction(user_id, _expense(category_id="missing"))

    assert excinfo.value.errors[0].field == "categoryId"
    assert len(store.get_transactions(user_id)) == 5


def test_transaction_category_must_belong_to_the_same_user(store):
    with pytest.raises(ValidationError):
        store.create_transaction("someone-else", _expense(category_id="cat-1"))


def test_category_names_are_unique_per_user(store, user_id):
    payload = {"name": "food & dining", "icon": "fas fa-utensils", "color": "#FB923C"}

    with pytest.raises(ValidationError):
        store.create_category(user_id, payload)

    other = store.create_category("someone-else", payload)
    assert store.get_categories("someone-else") == [other]


def test_categories_keep_insertion_order(store, user_id):
    created = store.create_category(user_id, {"name": "Pets", "icon": "fas fa-paw", "color": "#AABBCC"})

    categories = store.get_categories(user_id)
    assert [category.id for category in categories[:7]] == [f"cat-{n}" for n in range(1, 8)]
    assert categories[-1] == created
    assert store.get_category(created.id) == created


def test_budgets_filter_by_exact_month(store, user_id):
    store.create_budget(user_id, {"category_id": "cat-4", "amount": Decimal("90.00"), "month": "2025-09"})

    assert [budget.id for budget in store.get_budgets(user_id, "2025-08")] == [
        "budget-1",
        "budget-2",
        "budget-3",
    ]
    assert len(store.get_budgets(user_id)) == 4
    assert store.get_budgets(user_id, "2025-10") == []


def test_duplicate_budget_for_category_and_month_is_rejected(store, user_id):
    with pytest.raises(ValidationError):
        store.create_budget(user_id, {"category_id": "cat-1", "amount": Decimal("50.00"), "month": "2025-08"})

    assert len(store.get_budgets(user_id)) == 3


def test_update_budget_changes_only_given_fields(store, user_id):
    updated = store.update_budget("budget-1", {"amount": Decimal("350.00")})

    assert updated.amount == Decimal("350.00")
    assert updated.category_id == "cat-1"
    assert updated.month == "2025-08"
    assert updated.user_id == user_id
    assert store.get_budgets(user_id)[0] == updated


def test_update_missing_budget_returns_none_and_changes_nothing(store, user_id):
    before = store.get_budgets(user_id)

    assert store.update_budget("no-such-budget", {"amount": Decimal("1.00")}) is None
    assert store.get_budgets(user_id) == before


def test_update_budget_cannot_collide_with_another_budget(store, user_id):
    with pytest.raises(ValidationError):
        store.update_budget("budget-2", {"category_id": "cat-1"})

    assert store.get_budgets(user_id, "2025-08")[1].category_id == "cat-2"


def test_update_budget_rejects_unknown_category(store):
    with pytest.raises(ValidationError):
        store.update_budget("budget-2", {"category_id": "missing"})


def test_user_lookup_and_unique_usernames():
    store = MemoryStore()
    user = store.create_user({"username": "alex", "password": "secret"})

    assert store.get_user(user.id) == user
    assert store.get_user_by_username("alex") == user
    assert store.get_user("missing") is None
    assert store.get_user_by_username("missing") is None
    with pytest.raises(ValidationError):
        store.create_user({"username": "alex", "password": "other"})


def test_json_store_persists_and_reloads(tmp_path, user_id):
    storage = JSONStorage(tmp_path)
    store = JSONStore(storage, now=lambda: NOW)
    seed_default_data(store)
    txn = store.create_transaction(user_id, _expense(amount="12.30"))
    store.update_budget("budget-3", {"amount": Decimal("150.00")})

    reloaded = JSONStore(JSONStorage(tmp_path))

    assert reloaded.get_transactions(user_id, date(2025, 8, 10), date(2025, 8, 10))[0] == txn
    assert reloaded.get_budgets(user_id)[2].amount == Decimal("150.00")
    assert len(reloaded.get_categories(user_id)) == 7
    saved = json.loads((tmp_path / "transactions.json").read_text(encoding="utf-8"))
    assert {"id": txn.id, "amount": "12.30"}.items() <= saved[-1].items()


def test_json_store_reports_corrupted_files(tmp_path):
    (tmp_path / "budgets.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceError):
        JSONStore(JSONStorage(tmp_path))


def test_json_store_reports_malformed_records(tmp_path):
    (tmp_path / "budgets.json").write_text(json.dumps([{"id": "b"}]), encoding="utf-8")

    with pytest.raises(PersistenceError):
        JSONStore(JSONStorage(tmp_path))


def test_create_store_seeds_memory_backend():
    store = create_store(Config())

    assert store.get_user(DEFAULT_USER_ID).username == "demo"
    assert len(store.get_transactions(DEFAULT_USER_ID)) == 5


def test_create_store_without_seed_only_adds_default_user(tmp_path):
    config = Config()
    config.STORE_BACKEND = "json"
    config.DATA_DIR = tmp_path
    config.SEED_DATA = False

    store = create_store(config)

    assert store.get_user(DEFAULT_USER_ID) is not None
    assert store.get_categories(DEFAULT_USER_ID) == []
    assert (tmp_path / "users.json").exists()


def test_create_store_does_not_reseed_existing_json_data(tmp_path):
    config = Config()
    config.STORE_BACKEND = "json"
    config.DATA_DIR = tmp_path
    first = create_store(config)
    first.create_category(DEFAULT_USER_ID, {"name": "Pets", "icon": "fas fa-paw", "color": "#AABBCC"})

    second = create_store(config)

    assert len(second.get_categories(DEFAULT_USER_ID)) == 8


class FailingStorage(JSONStorage):
    """JSONStorage whose writes can be switched off to simulate a full disk."""

    def __init__(self, base_path):
        super().__init__(base_path)
        self.fail = False

    def save(self, resource, records):
        if self.fail:
            raise PersistenceError(f"Unable to write to {resource}")
        super().save(resource, records)


@pytest.fixture
def failing_store(tmp_path):
    storage = FailingStorage(tmp_path)
    store = JSONStore(storage, now=lambda: NOW)
    seed_default_data(store)
    storage.fail = True
    return store, storage


def test_failed_save_does_not_keep_new_transaction(failing_store, tmp_path, user_id):
    store, storage = failing_store

    with pytest.raises(PersistenceError):
        store.create_transaction(user_id, _expense())

    assert len(store.get_transactions(user_id)) == 5
    assert len(JSONStore(JSONStorage(tmp_path)).get_transactions(user_id)) == 5

    storage.fail = False
    store.create_transaction(user_id, _expense(amount="3.00"))
    reloaded = JSONStore(JSONStorage(tmp_path))
    assert [txn.amount for txn in reloaded.get_transactions(user_id, date(2025, 8, 10), date(2025, 8, 10))] == [
        Decimal("3.00")
    ]


def test_failed_save_restores_previous_budget(failing_store, user_id):
    store, _ = failing_store

    with pytest.raises(PersistenceError):
        store.update_budget("budget-1", {"amount": Decimal("999.00")})

    assert store.get_budgets(user_id)[0].amount == Decimal("300.00")


def test_failed_save_does_not_keep_new_category_or_budget(failing_store, user_id):
    store, _ = failing_store

    with pytest.raises(PersistenceError):
        store.create_category(user_id, {"name": "Pets", "icon": "fas fa-paw", "color": "#AABBCC"})
    with pytest.raises(PersistenceError):
        store.create_budget(user_id, {"category_id": "cat-4", "amount": Decimal("20.00"), "month": "2025-08"})

    assert len(store.get_categories(user_id)) == 7
    assert len(store.get_budgets(user_id)) == 3


def test_failed_bootstrap_leaves_store_empty(tmp_path):
    storage = FailingStorage(tmp_path)
    storage.fail = True
    store = JSONStore(storage)

    with pytest.raises(PersistenceError):
        seed_default_data(store)

    assert store.is_empty()


def test_concurrent_creates_get_distinct_ids(store, user_id):
    workers = 16
    barrier = threading.Barrier(workers)

    def add_transaction(_):
        barrier.wait()
        return store.create_transaction(user_id, _expense()).id

    with ThreadPoolExecutor(max_workers=workers) as pool:
        ids = list(pool.map(add_transaction, range(workers)))

    assert len(set(ids)) == workers
    assert len(store.get_transactions(user_id)) == 5 + workers


def test_concurrent_budget_creates_and_updates(store, user_id):
    months = [f"2026-{n:02d}" for n in range(1, 13)]
    barrier = threading.Barrier(len(months))

    def add_budget(month):
        barrier.wait()
        return store.create_budget(user_id, {"category_id": "cat-4", "amount": Decimal("40.00"), "month": month}).id

    with ThreadPoolExecutor(max_workers=len(months)) as pool:
        ids = list(pool.map(add_budget, months))

    assert len(set(ids)) == len(months)
    assert len(store.get_budgets(user_id)) == 3 + len(months)

    amounts = [Decimal(f"{n}.00") for n in range(100, 112)]
    update_barrier = threading.Barrier(len(amounts))

    def set_amount(amount):
        update_barrier.wait()
        return store.update_budget("budget-1", {"amount": amount})

    with ThreadPoolExecutor(max_workers=len(amounts)) as pool:
        list(pool.map(set_amount, amounts))

    final = [budget for budget in store.get_budgets(user_id, "2025-08") if budget.id == "budget-1"]
    assert len(final) == 1
    assert final[0].amount in amounts
    assert (final[0].category_id, final[0].month, final[0].user_id) == ("cat-1", "2025-08", user_id)
