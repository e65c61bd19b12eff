"""Application configuration read from the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

ENV_PREFIX = "FINANCE_TRACKER_"
STORE_BACKENDS = {"memory", "json"}


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name, default)


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = _env(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Settings shared by the API and the console interface."""

    APP_NAME = "Finance Tracker"

    def __init__(self) -> None:
        self.ENV = (_env("ENV", "prod") or "prod").lower()
        self.ALLOWED_ORIGINS = self._split_origins(_env("ALLOWED_ORIGINS"))
        self.STORE_BACKEND = (_env("STORE", "memory") or "memory").lower()
        self.DATA_DIR = Path(_env("DATA_DIR", "data") or "data").expanduser()
        self.DEFAULT_USER_ID = _env("DEFAULT_USER_ID", "default-user-id") or "default-user-id"
        self.SEED_DATA = _env_bool("SEED", default=True)
        self.LOG_LEVEL = (_env("LOG_LEVEL", "INFO") or "INFO").upper()
        log_file = _env("LOG_FILE")
        self.LOG_FILE = Path(log_file).expanduser() if log_file else None

        if self.STORE_BACKEND not in STORE_BACKENDS:
            raise ValueError(
                f"{ENV_PREFIX}STORE must be one of: {', '.join(sorted(STORE_BACKENDS))}"
            )

    @property
    def dev_mode(self) -> bool:
        return self.ENV in {"dev", "development"}

    @staticmethod
    def _split_origins(raw: Optional[str]) -> List[str]:
        if not raw:
            return []
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
