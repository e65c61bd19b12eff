"""Shared fixtures: seeded and empty stores, configuration, Flask app and client."""

from __future__ import annotations

import os
from datetime import date, datetime, timezone

import pytest

from api.app import create_app
from finance_core.config import ENV_PREFIX, Config
from finance_core.seed import DEFAULT_USER_ID, default_user
from finance_core.storage import MemoryStore, seed_default_data

# The seeded sample data all falls in August 2025.
TODAY = date(2025, 8, 25)
NOW = datetime(2025, 8, 25, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep developer FINANCE_TRACKER_* variables out of the tests."""
    for name in list(os.environ):
        if name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store() -> MemoryStore:
    """A store holding the default user with the demo categories, transactions and budgets."""
    seeded = MemoryStore(now=lambda: NOW)
    seed_default_data(seeded)
    return seeded


@pytest.fixture
def empty_store() -> MemoryStore:
    """A store holding only the default user."""
    bare = MemoryStore(now=lambda: NOW)
    bare.bootstrap(users=[default_user()])
    return bare


@pytest.fixture
def config() -> Config:
    return Config()


@pytest.fixture
def app(store, config):
    application = create_app(store=store, config=config, clock=lambda: TODAY)
    application.config.update(TESTING=True)
    return application


@pytest.fixture
def client(app):
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def user_id() -> str:
    return DEFAULT_USER_ID
