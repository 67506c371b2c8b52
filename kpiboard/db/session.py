"""Engine and session factory bound to configured database URL."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker

from kpiboard.core.config import get_settings

IN_MEMORY_URL = "sqlite+pysqlite:///:memory:"


def build_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    connect_args: dict[str, object] = {}
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True, future=True)


engine = build_engine(get_settings().database_url or IN_MEMORY_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
