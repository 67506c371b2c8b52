from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from kpiboard.services.workbook_service import apply_cutoff, cumulative, normalize_series


def _put(client: TestClient, **payload: object) -> None:
    body = {"sheet": "Umsatz", "year": 2025, "entityCode": "de", "label": "IST/FC Umsatz", "cutoffMonth": 12}
    body.update(payload)
    response = client.put("/matrix", json=body)
    assert response.status_code == 200, response.json()


def _line(sheet: dict, entity_code: str, label: str) -> list[float]:
    for line in sheet["lines"]:
        if line["entityCode"] == entity_code and line["label"] == label:
            return line["values"]
    raise AssertionError(f"no line {label!r} for {entity_code}")


def test_helpers() -> None:
    assert normalize_series({2: 3.0, 5: float("nan")}) == [0.0, 3.0] + [0.0] * 10
    assert cumulative([1.0, 2.0, 3.0]) == [1.0, 3.0, 6.0]
    assert apply_cutoff([1.0] * 12, [2.0] * 12, 4) == [1.0] * 4 + [2.0] * 8


def test_umsatz_sheet_sums_leaf_entities_into_aggregate(client: TestClient, catalog) -> None:
    _put(client, values=[10.0] * 12)
    _put(client, entityCode="at", values=[5.0] * 12)
    _put(client, label="Plan Umsatz", values=[1.0] * 12)

    response = client.get("/workbook", params={"sheet": "Umsatz", "year": 2025, "cutoffMonth": 12})

    assert response.status_code == 200
    sheet = response.json()
    assert sheet["sheet"] == "Umsatz"
    assert sheet["cutoffMonth"] == 12
    assert [entity["code"] for entity in sheet["entities"]] == ["gruppe", "de", "at"]
    assert len(sheet["lines"]) == 3 * 5

    assert _line(sheet, "gruppe", "IST/FC Umsatz") == [15.0] * 12
    assert _line(sheet, "gruppe", "Plan Umsatz") == [1.0] * 12
    assert _line(sheet, "de", "kum IST / FC") == [10.0 * month for month in range(1, 13)]
    assert _line(sheet, "at", "Plan Umsatz") == [0.0] * 12

    bar = sheet["charts"]["bar"]
    assert bar[0] == {"month": 1, "label": "Jan", "plan": 1.0, "actualForecast": 15.0}
    line = sheet["charts"]["line"]
    assert line[-1]["cumActualForecast"] == 180.0
    assert line[-1]["cumPlan"] == 12.0


def test_cutoff_switches_between_actuals_and_forecast(client: TestClient, catalog) -> None:
    _put(client, cutoffMonth=6, values=[10.0] * 6 + [3.0] * 6)

    at_six = client.get("/workbook", params={"sheet": "Umsatz", "year": 2025, "cutoffMonth": 6}).json()
    at_three = client.get("/workbook", params={"sheet": "Umsatz", "year": 2025, "cutoffMonth": 3}).json()

    assert _line(at_six, "de", "IST/FC Umsatz") == [10.0] * 6 + [3.0] * 6
    assert _line(at_three, "de", "IST/FC Umsatz") == [10.0] * 3 + [0.0] * 3 + [3.0] * 6


def test_cutoff_defaults_to_setting(client: TestClient, catalog) -> None:
    client.put("/settings/forecast-cutoff", json={"month": 4})

    sheet = client.get("/workbook", params={"sheet": "Ertrag", "year": 2025}).json()

    assert sheet["cutoffMonth"] == 4
    assert _line(sheet, "de", "Plan EBIT") == [0.0] * 12


def test_headcount_sheet_lines(client: TestClient, catalog) -> None:
    _put(client, sheet="Headcount", label="IST/FC headcount", values=[100.0] * 12)
    _put(client, sheet="Headcount", label="davon Umlagerelevant", values=[40.0] * 12)

    sheet = client.get("/workbook", params={"sheet": "Headcount", "year": 2025, "cutoffMonth": 12}).json()

    labels = [line["label"] for line in sheet["lines"] if line["entityCode"] == "de"]
    assert labels == [
        "Plan Headcount",
        "IST/FC headcount",
        "davon Umlagerelevant",
        "ohne Umlage Deutschland",
        "ohne Umlage",
        "Vorjahr",
        "Vorjahr kum",
    ]
    assert _line(sheet, "gruppe", "davon Umlagerelevant") == [40.0] * 12
    assert _line(sheet, "gruppe", "IST/FC headcount") == [100.0] * 12


def test_sheet_without_entities_is_empty(client: TestClient) -> None:
    sheet = client.get("/workbook", params={"sheet": "Umsatz", "year": 2025}).json()

    assert sheet["entities"] == []
    assert sheet["lines"] == []
    assert len(sheet["charts"]["bar"]) == 12


@pytest.mark.parametrize(
    "params",
    [
        {"year": 2025},
        {"sheet": "Bilanz"},
        {"sheet": "Umsatz", "year": 1999},
        {"sheet": "Umsatz", "year": "soon"},
        {"sheet": "Umsatz", "cutoffMonth": 0},
    ],
)
def test_invalid_query(client: TestClient, params: dict[str, object]) -> None:
    response = client.get("/workbook", params=params)

    assert response.status_code == 400
    assert response.json() == {"error": "invalid query"}
