"""SQLAlchemy engine helpers for the notes backend.

The database URL comes from ``DATABASE_URL``; without it a SQLite file under
``APP_DATA_DIR`` is used.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from sqlalchemy import MetaData, create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from quicknotes.utils import settings

metadata = MetaData()


def make_engine(url: Optional[str] = None) -> Engine:
    """Create an engine with safe defaults for API usage."""
    url = url or settings.database_url()
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    database = parsed.database or ""
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, connect_args={"check_same_thread": False})

    # in-memory: every connection must see the same database
    return create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
