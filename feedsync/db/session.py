"""Database engine helpers."""

from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine


DEFAULT_DATABASE_URL = "sqlite:///feedsync.db"


def database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def create_engine_from_env(url: str | None = None) -> Engine:
    """Create an engine for ``url`` or the DATABASE_URL environment variable."""
    return create_engine(url or database_url(), pool_pre_ping=True, future=True)
