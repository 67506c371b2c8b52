import pytest

from kpiboard.models.entities import KpiArea
from kpiboard.services.labels import LABEL_MAPPINGS, EditMode, Sheet, map_label_to_kpi


@pytest.mark.parametrize(
    ("sheet", "label", "area", "kpi_code", "mode"),
    [
        ("Umsatz", "Plan Umsatz", KpiArea.UMSATZ, "umsatz", EditMode.PLAN),
        ("Umsatz", "IST/FC Umsatz", KpiArea.UMSATZ, "umsatz", EditMode.IST_FC),
        ("Ertrag", "Plan EBIT", KpiArea.ERTRAG, "ebit", EditMode.PLAN),
        ("Ertrag", "IST/FC EBIT", KpiArea.ERTRAG, "ebit", EditMode.IST_FC),
        ("Headcount", "Plan Headcount", KpiArea.HEADCOUNT, "headcount", EditMode.PLAN),
        ("Headcount", "IST/FC headcount", KpiArea.HEADCOUNT, "headcount", EditMode.IST_FC),
        ("Headcount", "davon Umlagerelevant", KpiArea.HEADCOUNT, "headcount_umlagerelevant", EditMode.IST_FC),
        ("Headcount", "ohne Umlage Deutschland", KpiArea.HEADCOUNT, "headcount_ohne_umlage_de", EditMode.IST_FC),
        ("Headcount", "ohne Umlage", KpiArea.HEADCOUNT, "headcount_ohne_umlage", EditMode.IST_FC),
    ],
)
def test_known_labels_map_to_kpi_and_mode(sheet, label, area, kpi_code, mode) -> None:
    mapping = map_label_to_kpi(sheet, label)

    assert mapping is not None
    assert (mapping.area, mapping.kpi_code, mapping.mode) == (area, kpi_code, mode)


def test_table_has_exactly_nine_editable_rows() -> None:
    assert len(LABEL_MAPPINGS) == 9


@pytest.mark.parametrize(
    ("sheet", "label"),
    [
        ("Umsatz", "Plan EBIT"),
        ("Umsatz", "plan umsatz"),
        ("Headcount", "IST/FC Headcount"),
        ("Ertrag", "kum Plan"),
        ("Bilanz", "Plan Umsatz"),
    ],
)
def test_other_labels_are_unmapped(sheet: str, label: str) -> None:
    assert map_label_to_kpi(sheet, label) is None


def test_accepts_sheet_enum() -> None:
    assert map_label_to_kpi(Sheet.ERTRAG, "Plan EBIT") is not None
