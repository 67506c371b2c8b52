from __future__ import annotations

import math

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from kpiboard.core.auth import ensure_user_principal
from kpiboard.models.entities import AuditLogEntry, Entity, Kpi, MonthlyValue, Scenario, UserEntityPermission
from kpiboard.repositories.values_repository import ValuesRepository
from kpiboard.services.labels import EditMode
from kpiboard.services.matrix_service import classify_scenario, coerce_value


def _headers(username: str) -> dict[str, str]:
    return {"X-User-Name": username, "X-User-Display-Name": username.title()}


def _payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "sheet": "Umsatz",
        "year": 2025,
        "entityCode": "de",
        "label": "IST/FC Umsatz",
        "values": [float(month * 10) for month in range(1, 13)],
        "cutoffMonth": 6,
    }
    payload.update(overrides)
    return payload


def _rows(db: Session, *, kpi_code: str = "umsatz") -> list[MonthlyValue]:
    return db.scalars(
        select(MonthlyValue)
        .join(Kpi, Kpi.id == MonthlyValue.kpi_id)
        .where(Kpi.code == kpi_code)
        .order_by(MonthlyValue.month.asc(), MonthlyValue.scenario.asc())
    ).all()


def _row_count(db: Session) -> int:
    return db.scalar(select(func.count()).select_from(MonthlyValue))


def _grant(db: Session, entity: Entity, username: str, *, can_edit: bool) -> None:
    user = ensure_user_principal(db, username=username)
    db.add(UserEntityPermission(user_id=user.id, entity_id=entity.id, can_view=True, can_edit=can_edit))
    db.commit()


def test_classify_scenario_uses_inclusive_cutoff() -> None:
    assert classify_scenario(EditMode.IST_FC, 6, 6) is Scenario.IST
    assert classify_scenario(EditMode.IST_FC, 7, 6) is Scenario.FC
    assert classify_scenario(EditMode.IST_FC, 12, 12) is Scenario.IST
    assert classify_scenario(EditMode.PLAN, 12, 1) is Scenario.PLAN


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, 0.0),
        (math.nan, 0.0),
        (math.inf, 0.0),
        (-math.inf, 0.0),
        ("12", 0.0),
        (True, 0.0),
        (7, 7.0),
        (-1.5, -1.5),
    ],
)
def test_coerce_value(raw: object, expected: float) -> None:
    assert coerce_value(raw) == expected


def test_ist_fc_edit_splits_at_cutoff(client: TestClient, db_session: Session, catalog) -> None:
    response = client.put("/matrix", json=_payload())

    assert response.status_code == 200
    assert response.json() == {"ok": True, "updated": 12}

    rows = _rows(db_session)
    assert [row.month for row in rows] == list(range(1, 13))
    assert [row.scenario for row in rows] == [Scenario.IST] * 6 + [Scenario.FC] * 6
    assert [row.value for row in rows] == [float(month * 10) for month in range(1, 13)]
    assert {row.entity_id for row in rows} == {catalog["de"].id}


def test_plan_edit_ignores_cutoff(client: TestClient, db_session: Session, catalog) -> None:
    response = client.put("/matrix", json=_payload(label="Plan Umsatz", cutoffMonth=3))

    assert response.status_code == 200
    rows = _rows(db_session)
    assert len(rows) == 12
    assert {row.scenario for row in rows} == {Scenario.PLAN}


def test_nulls_are_stored_as_zero(client: TestClient, db_session: Session, catalog) -> None:
    values: list[float | None] = [None] * 12
    values[0] = 5.0

    response = client.put("/matrix", json=_payload(values=values))

    assert response.status_code == 200
    assert response.json()["updated"] == 12
    assert [row.value for row in _rows(db_session)] == [5.0] + [0.0] * 11


def test_same_payload_twice_is_idempotent(client: TestClient, db_session: Session, catalog) -> None:
    first = client.put("/matrix", json=_payload())
    snapshot = [(row.month, row.scenario, row.value) for row in _rows(db_session)]
    second = client.put("/matrix", json=_payload())

    assert first.status_code == second.status_code == 200
    assert [(row.month, row.scenario, row.value) for row in _rows(db_session)] == snapshot
    assert _row_count(db_session) == 12


def test_edit_overwrites_existing_cells(client: TestClient, db_session: Session, catalog) -> None:
    client.put("/matrix", json=_payload())
    response = client.put("/matrix", json=_payload(values=[1.0] * 12))

    assert response.status_code == 200
    assert [row.value for row in _rows(db_session)] == [1.0] * 12


def test_cutoff_defaults_to_stored_setting(client: TestClient, db_session: Session, catalog) -> None:
    assert client.put("/settings/forecast-cutoff", json={"month": 3}).status_code == 200

    payload = _payload()
    del payload["cutoffMonth"]
    response = client.put("/matrix", json=payload)

    assert response.status_code == 200
    assert [row.scenario for row in _rows(db_session)] == [Scenario.IST] * 3 + [Scenario.FC] * 9


def test_headcount_sub_kpi_edit(client: TestClient, db_session: Session, catalog) -> None:
    response = client.put(
        "/matrix",
        json=_payload(sheet="Headcount", label="ohne Umlage Deutschland", values=[2.0] * 12),
    )

    assert response.status_code == 200
    assert len(_rows(db_session, kpi_code="headcount_ohne_umlage_de")) == 12
    assert _rows(db_session, kpi_code="headcount") == []


@pytest.mark.parametrize(
    ("overrides", "status_code", "error"),
    [
        ({"label": "Vorjahr kum"}, 400, "unsupported edit label"),
        ({"sheet": "Ertrag", "label": "Plan Umsatz"}, 400, "unsupported edit label"),
        ({"entityCode": "nowhere"}, 404, "unknown entity"),
        ({"entityCode": "gruppe"}, 400, "cannot edit aggregate entity"),
        ({"values": [1.0] * 11}, 400, "invalid payload"),
        ({"values": [1.0] * 13}, 400, "invalid payload"),
        ({"values": ["1"] * 12}, 400, "invalid payload"),
        ({"year": 1999}, 400, "invalid payload"),
        ({"year": 2101}, 400, "invalid payload"),
        ({"cutoffMonth": 13}, 400, "invalid payload"),
        ({"sheet": "Bilanz"}, 400, "invalid payload"),
        ({"entityCode": ""}, 400, "invalid payload"),
    ],
)
def test_rejected_edits_write_nothing(
    client: TestClient,
    db_session: Session,
    catalog,
    overrides: dict[str, object],
    status_code: int,
    error: str,
) -> None:
    response = client.put("/matrix", json=_payload(**overrides))

    assert response.status_code == status_code
    assert response.json() == {"error": error}
    assert _row_count(db_session) == 0


def test_missing_kpi_row_is_not_found(client: TestClient, db_session: Session, catalog) -> None:
    kpi = db_session.scalar(select(Kpi).where(Kpi.code == "ebit"))
    db_session.delete(kpi)
    db_session.commit()

    response = client.put("/matrix", json=_payload(sheet="Ertrag", label="IST/FC EBIT"))

    assert response.status_code == 404
    assert response.json() == {"error": "unknown kpi"}


def test_failure_mid_batch_rolls_back_every_month(
    client: TestClient,
    db_session: Session,
    catalog,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    original_upsert = ValuesRepository.upsert_value

    def failing_upsert(self, **kwargs):
        if kwargs["month"] == 7:
            raise OperationalError("INSERT INTO values_monthly", {}, Exception("disk I/O error"))
        return original_upsert(self, **kwargs)

    monkeypatch.setattr(ValuesRepository, "upsert_value", failing_upsert)

    response = client.put("/matrix", json=_payload())

    assert response.status_code == 500
    assert response.json() == {"error": "failed to update", "failedMonth": 7, "updated": 0}
    assert _row_count(db_session) == 0
    assert db_session.scalar(select(func.count()).select_from(AuditLogEntry)) == 0


def test_failure_keeps_previous_values(
    client: TestClient,
    db_session: Session,
    catalog,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    assert client.put("/matrix", json=_payload(values=[1.0] * 12)).status_code == 200

    original_upsert = ValuesRepository.upsert_value

    def failing_upsert(self, **kwargs):
        if kwargs["month"] == 7:
            raise OperationalError("UPDATE values_monthly", {}, Exception("locked"))
        return original_upsert(self, **kwargs)

    monkeypatch.setattr(ValuesRepository, "upsert_value", failing_upsert)

    response = client.put("/matrix", json=_payload(values=[9.0] * 12))

    assert response.status_code == 500
    db_session.expire_all()
    assert [row.value for row in _rows(db_session)] == [1.0] * 12


def test_successful_edit_is_audited(client: TestClient, db_session: Session, catalog) -> None:
    client.put("/matrix", json=_payload())

    entry = db_session.scalar(select(AuditLogEntry))
    assert entry is not None
    assert (entry.action, entry.entity_type, entry.entity_id) == ("update", "value", catalog["de"].id)
    assert entry.username == "dev.admin"


def test_user_without_edit_permission_is_forbidden(client: TestClient, db_session: Session, catalog) -> None:
    _grant(db_session, catalog["de"], "viewer", can_edit=False)

    response = client.put("/matrix", json=_payload(), headers=_headers("viewer"))

    assert response.status_code == 403
    assert _row_count(db_session) == 0


def test_editor_can_write_actuals_but_not_plan(client: TestClient, db_session: Session, catalog) -> None:
    _grant(db_session, catalog["de"], "editor", can_edit=True)

    actuals = client.put("/matrix", json=_payload(), headers=_headers("editor"))
    plan = client.put("/matrix", json=_payload(label="Plan Umsatz"), headers=_headers("editor"))

    assert actuals.status_code == 200
    assert plan.status_code == 403
    assert {row.scenario for row in _rows(db_session)} == {Scenario.IST, Scenario.FC}


def test_copy_prior_year(client: TestClient, db_session: Session, catalog) -> None:
    client.put("/matrix", json=_payload(year=2024, cutoffMonth=12, values=[10.0] * 12))
    client.put("/matrix", json=_payload(year=2024, label="Plan Umsatz", values=[20.0] * 12))

    response = client.post(
        "/matrix",
        json={"sheet": "Umsatz", "sourceYear": 2024, "targetYear": 2025, "entityCode": "de"},
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True, "copied": 60, "sourceYear": 2024, "targetYear": 2025}

    target = [row for row in _rows(db_session) if row.year == 2025]
    by_scenario: dict[Scenario, list[float]] = {}
    for row in target:
        by_scenario.setdefault(row.scenario, []).append(row.value)
    assert by_scenario[Scenario.PLAN] == [20.0] * 12
    assert by_scenario[Scenario.IST] == [0.0] * 12
    assert by_scenario[Scenario.FC] == [0.0] * 12
    assert by_scenario[Scenario.PRIOR_YEAR] == [10.0] * 12
    assert by_scenario[Scenario.PRIOR_YEAR_KUM] == [10.0 * month for month in range(1, 13)]


def test_copy_prior_year_covers_all_leaf_entities(client: TestClient, catalog) -> None:
    response = client.post("/matrix", json={"sheet": "Ertrag", "sourceYear": 2024, "targetYear": 2025})

    assert response.status_code == 200
    assert response.json()["copied"] == 2 * 5 * 12


def test_copy_prior_year_requires_admin(client: TestClient, db_session: Session, catalog) -> None:
    _grant(db_session, catalog["de"], "editor", can_edit=True)

    response = client.post(
        "/matrix",
        json={"sheet": "Umsatz", "sourceYear": 2024, "targetYear": 2025},
        headers=_headers("editor"),
    )

    assert response.status_code == 403
    assert _row_count(db_session) == 0


def test_whole_number_floats_are_accepted_for_year_and_cutoff(
    client: TestClient,
    db_session: Session,
    catalog,
) -> None:
    response = client.put("/matrix", json=_payload(year=2025.0, cutoffMonth=6.0))

    assert response.status_code == 200
    rows = _rows(db_session)
    assert {row.year for row in rows} == {2025}
    assert [row.scenario for row in rows] == [Scenario.IST] * 6 + [Scenario.FC] * 6


@pytest.mark.parametrize("overrides", [{"year": 2025.5}, {"cutoffMonth": 6.5}, {"year": True}, {"year": "2025"}])
def test_fractional_or_non_numeric_year_and_cutoff_are_rejected(
    client: TestClient,
    db_session: Session,
    catalog,
    overrides: dict[str, object],
) -> None:
    response = client.put("/matrix", json=_payload(**overrides))

    assert response.status_code == 400
    assert response.json() == {"error": "invalid payload"}
    assert _row_count(db_session) == 0
