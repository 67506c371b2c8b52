"""Request-scoped database session dependency."""

from collections.abc import Iterator

from sqlalchemy.orm import Session

from kpiboard.db.session import SessionLocal


def get_db_session() -> Iterator[Session]:
    """One session per request; closing it discards uncommitted work."""

    with SessionLocal() as session:
        yield session
