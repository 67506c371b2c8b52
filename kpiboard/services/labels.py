"""Workbook row labels and the KPI/mode each editable label writes to."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from kpiboard.models.entities import KpiArea


class Sheet(str, enum.Enum):
    UMSATZ = "Umsatz"
    ERTRAG = "Ertrag"
    HEADCOUNT = "Headcount"


class EditMode(str, enum.Enum):
    PLAN = "plan"
    IST_FC = "ist_fc"


@dataclass(frozen=True, slots=True)
class LabelMapping:
    area: KpiArea
    kpi_code: str
    mode: EditMode


LABEL_MAPPINGS: dict[tuple[Sheet, str], LabelMapping] = {
    (Sheet.UMSATZ, "Plan Umsatz"): LabelMapping(KpiArea.UMSATZ, "umsatz", EditMode.PLAN),
    (Sheet.UMSATZ, "IST/FC Umsatz"): LabelMapping(KpiArea.UMSATZ, "umsatz", EditMode.IST_FC),
    (Sheet.ERTRAG, "Plan EBIT"): LabelMapping(KpiArea.ERTRAG, "ebit", EditMode.PLAN),
    (Sheet.ERTRAG, "IST/FC EBIT"): LabelMapping(KpiArea.ERTRAG, "ebit", EditMode.IST_FC),
    (Sheet.HEADCOUNT, "Plan Headcount"): LabelMapping(KpiArea.HEADCOUNT, "headcount", EditMode.PLAN),
    (Sheet.HEADCOUNT, "IST/FC headcount"): LabelMapping(KpiArea.HEADCOUNT, "headcount", EditMode.IST_FC),
    (Sheet.HEADCOUNT, "davon Umlagerelevant"): LabelMapping(
        KpiArea.HEADCOUNT, "headcount_umlagerelevant", EditMode.IST_FC
    ),
    (Sheet.HEADCOUNT, "ohne Umlage Deutschland"): LabelMapping(
        KpiArea.HEADCOUNT, "headcount_ohne_umlage_de", EditMode.IST_FC
    ),
    (Sheet.HEADCOUNT, "ohne Umlage"): LabelMapping(KpiArea.HEADCOUNT, "headcount_ohne_umlage", EditMode.IST_FC),
}

# Primary KPI of each sheet, used when copying a prior year.
SHEET_PRIMARY_KPI: dict[Sheet, tuple[KpiArea, str]] = {
    Sheet.UMSATZ: (KpiArea.UMSATZ, "umsatz"),
    Sheet.ERTRAG: (KpiArea.ERTRAG, "ebit"),
    Sheet.HEADCOUNT: (KpiArea.HEADCOUNT, "headcount"),
}


def map_label_to_kpi(sheet: Sheet | str, label: str) -> LabelMapping | None:
    """Return the KPI and edit mode for a sheet row label, or ``None``."""

    try:
        sheet = Sheet(sheet)
    except ValueError:
        return None
    return LABEL_MAPPINGS.get((sheet, label))
