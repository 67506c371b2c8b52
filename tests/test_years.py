from __future__ import annotations

from datetime import date, datetime

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from kpiboard.models.entities import Entity, Kpi, KpiArea, MonthlyValue, Scenario
from kpiboard.repositories.values_repository import ValuesRepository
from kpiboard.services.years_service import YearsService, build_years_listing


def _store_year(db: Session, entity: Entity, year: int) -> None:
    kpi = db.query(Kpi).filter(Kpi.area == KpiArea.UMSATZ, Kpi.code == "umsatz").one()
    db.add(
        MonthlyValue(
            year=year,
            month=1,
            entity_id=entity.id,
            kpi_id=kpi.id,
            scenario=Scenario.PLAN,
            value=1.0,
            updated_at=datetime.utcnow(),
        )
    )
    db.commit()


def test_listing_pads_stored_years_around_current() -> None:
    listing = build_years_listing([2024, 2022], 2025)

    assert listing.available == [2024, 2022]
    assert listing.current == 2025
    assert listing.all == list(range(2030, 2016, -1))


def test_listing_without_data_is_window_around_current() -> None:
    listing = build_years_listing([], 2025)

    assert listing.available == []
    assert listing.all == list(range(2030, 2019, -1))


def test_listing_extends_to_future_years() -> None:
    listing = build_years_listing([2035], 2025)

    assert listing.all[0] == 2040
    assert listing.all[-1] == 2020


def test_service_reads_distinct_years(db_session: Session, catalog) -> None:
    _store_year(db_session, catalog["de"], 2022)
    _store_year(db_session, catalog["at"], 2024)
    _store_year(db_session, catalog["at"], 2022)

    listing = YearsService(db_session, today=lambda: date(2025, 3, 1)).list_years()

    assert listing.available == [2024, 2022]
    assert listing.all[0] == 2030
    assert listing.all[-1] == 2017


def test_service_degrades_to_window_on_storage_error(db_session: Session, monkeypatch) -> None:
    def broken(self):
        raise OperationalError("SELECT", {}, Exception("no such table"))

    monkeypatch.setattr(ValuesRepository, "distinct_years", broken)

    listing = YearsService(db_session, today=lambda: date(2025, 3, 1)).list_years()

    assert listing.available == []
    assert listing.all == list(range(2030, 2019, -1))


def test_years_endpoint(client: TestClient) -> None:
    response = client.get("/years")

    assert response.status_code == 200
    body = response.json()
    current = date.today().year
    assert body["current"] == current
    assert body["available"] == []
    assert body["all"] == list(range(current + 5, current - 6, -1))
