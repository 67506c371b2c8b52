from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from kpiboard.db.base import Base
from kpiboard.db.dependencies import get_db_session
import kpiboard.models.entities  # noqa: F401
from kpiboard.main import create_app
from kpiboard.models.entities import Entity, Kpi, KpiArea

KPI_CATALOG = [
    (KpiArea.UMSATZ, "umsatz", "Umsatz"),
    (KpiArea.ERTRAG, "ebit", "EBIT"),
    (KpiArea.HEADCOUNT, "headcount", "Headcount"),
    (KpiArea.HEADCOUNT, "headcount_umlagerelevant", "davon Umlagerelevant"),
    (KpiArea.HEADCOUNT, "headcount_ohne_umlage_de", "ohne Umlage Deutschland"),
    (KpiArea.HEADCOUNT, "headcount_ohne_umlage", "ohne Umlage"),
]


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def catalog(db_session: Session) -> dict[str, Entity]:
    """Group aggregate with two leaf entities plus the full KPI catalog."""

    entities = {
        "gruppe": Entity(code="gruppe", display_name="Gruppe", sort_order=0, is_aggregate=True),
        "de": Entity(code="de", display_name="Deutschland", sort_order=1, is_aggregate=False),
        "at": Entity(code="at", display_name="Oesterreich", sort_order=2, is_aggregate=False),
    }
    db_session.add_all(entities.values())
    db_session.add_all(
        Kpi(area=area, code=code, display_name=display_name, is_derived=False)
        for area, code, display_name in KPI_CATALOG
    )
    db_session.commit()
    for entity in entities.values():
        db_session.refresh(entity)
    return entities

