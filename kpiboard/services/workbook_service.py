"""Read model for workbook sheets: per-entity lines plus group charts."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence

from sqlalchemy.orm import Session

from kpiboard.models.entities import Entity, KpiArea, Scenario
from kpiboard.repositories.catalog_repository import CatalogRepository
from kpiboard.repositories.values_repository import ValuesRepository
from kpiboard.services.labels import Sheet

MONTH_LABELS = ("Jan", "Feb", "Mrz", "Apr", "Mai", "Jun", "Jul", "Aug", "Sep", "Okt", "Nov", "Dez")
MONTHS = tuple(range(1, 13))
CHART_ENTITY_CODE = "gruppe"

# scenario -> entity code -> month -> value
ScenarioMap = dict[Scenario, dict[str, dict[int, float]]]

FINANCIAL_SHEETS: dict[Sheet, tuple[KpiArea, str, str]] = {
    Sheet.UMSATZ: (KpiArea.UMSATZ, "umsatz", "Umsatz"),
    Sheet.ERTRAG: (KpiArea.ERTRAG, "ebit", "EBIT"),
}

HEADCOUNT_SUB_KPIS: tuple[tuple[str, str], ...] = (
    ("headcount_umlagerelevant", "davon Umlagerelevant"),
    ("headcount_ohne_umlage_de", "ohne Umlage Deutschland"),
    ("headcount_ohne_umlage", "ohne Umlage"),
)


def normalize_series(month_values: dict[int, float]) -> list[float]:
    """Twelve values, missing or non-finite months as 0."""

    out: list[float] = []
    for month in MONTHS:
        value = month_values.get(month)
        out.append(value if value is not None and math.isfinite(value) else 0.0)
    return out


def cumulative(series: Iterable[float]) -> list[float]:
    total = 0.0
    out: list[float] = []
    for value in series:
        total += value if math.isfinite(value) else 0.0
        out.append(total)
    return out


def apply_cutoff(ist: Sequence[float], fc: Sequence[float], cutoff_month: int) -> list[float]:
    """Actuals up to and including the cutoff month, forecast after it."""

    return [ist[idx] if month <= cutoff_month else fc[idx] for idx, month in enumerate(MONTHS)]


def _line(entity: Entity, label: str, values: list[float]) -> dict[str, object]:
    return {
        "entityCode": entity.code,
        "entityName": entity.display_name,
        "label": label,
        "values": values,
    }


class WorkbookService:
    """Builds the sheet payload rendered by the workbook grid and charts."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.catalog = CatalogRepository(db)
        self.values = ValuesRepository(db)

    def load_scenarios(
        self,
        *,
        year: int,
        area: KpiArea,
        kpi_code: str,
        scenarios: Sequence[Scenario],
    ) -> ScenarioMap:
        """Load scenario values of one KPI for every entity, keyed by entity code."""

        out: ScenarioMap = {scenario: {} for scenario in scenarios}
        kpi = self.catalog.get_kpi(area, kpi_code)
        if kpi is None:
            return out

        for scenario in scenarios:
            entity_map: dict[str, dict[int, float]] = {}
            for entity_code, month, value in self.values.list_scenario_values(
                year=year, kpi_id=kpi.id, scenario=scenario
            ):
                entity_map.setdefault(entity_code, {})[month] = value
            out[scenario] = entity_map
        return out

    @staticmethod
    def series(
        scenario_map: ScenarioMap,
        scenario: Scenario,
        entity: Entity | None,
        entities: Sequence[Entity],
    ) -> list[float]:
        """Leaf entities read their own rows; aggregates sum every leaf entity."""

        by_entity = scenario_map.get(scenario, {})
        if entity is None:
            return normalize_series({})
        if not entity.is_aggregate:
            return normalize_series(by_entity.get(entity.code, {}))

        totals: dict[int, float] = {}
        for part in entities:
            if part.is_aggregate:
                continue
            for month, value in by_entity.get(part.code, {}).items():
                totals[month] = totals.get(month, 0.0) + value
        return normalize_series(totals)

    def _charts(
        self,
        scenario_map: ScenarioMap,
        entities: Sequence[Entity],
        cutoff_month: int,
    ) -> dict[str, list[dict[str, object]]]:
        chart_entity = next((entity for entity in entities if entity.code == CHART_ENTITY_CODE), None)
        if chart_entity is None and entities:
            chart_entity = entities[0]

        plan = self.series(scenario_map, Scenario.PLAN, chart_entity, entities)
        ist = self.series(scenario_map, Scenario.IST, chart_entity, entities)
        fc = self.series(scenario_map, Scenario.FC, chart_entity, entities)
        prior_year_cum = self.series(scenario_map, Scenario.PRIOR_YEAR_KUM, chart_entity, entities)
        actual_forecast = apply_cutoff(ist, fc, cutoff_month)
        cum_plan = cumulative(plan)
        cum_actual_forecast = cumulative(actual_forecast)

        bar = [
            {
                "month": month,
                "label": MONTH_LABELS[idx],
                "plan": plan[idx],
                "actualForecast": actual_forecast[idx],
            }
            for idx, month in enumerate(MONTHS)
        ]
        line = [
            {
                "month": MONTH_LABELS[idx],
                "cumPlan": cum_plan[idx],
                "cumActualForecast": cum_actual_forecast[idx],
                "priorYearCum": prior_year_cum[idx],
            }
            for idx in range(len(MONTHS))
        ]
        return {"bar": bar, "line": line}

    def _financial_lines(
        self,
        *,
        sheet: Sheet,
        year: int,
        cutoff_month: int,
        entities: Sequence[Entity],
    ) -> tuple[list[dict[str, object]], ScenarioMap]:
        area, kpi_code, label_suffix = FINANCIAL_SHEETS[sheet]
        scenario_map = self.load_scenarios(
            year=year,
            area=area,
            kpi_code=kpi_code,
            scenarios=(Scenario.PLAN, Scenario.IST, Scenario.FC, Scenario.PRIOR_YEAR_KUM),
        )

        lines: list[dict[str, object]] = []
        for entity in entities:
            plan = self.series(scenario_map, Scenario.PLAN, entity, entities)
            ist = self.series(scenario_map, Scenario.IST, entity, entities)
            fc = self.series(scenario_map, Scenario.FC, entity, entities)
            prior_year_cum = self.series(scenario_map, Scenario.PRIOR_YEAR_KUM, entity, entities)
            actual_forecast = apply_cutoff(ist, fc, cutoff_month)

            lines.append(_line(entity, f"Plan {label_suffix}", plan))
            lines.append(_line(entity, f"IST/FC {label_suffix}", actual_forecast))
            lines.append(_line(entity, "kum Plan", cumulative(plan)))
            lines.append(_line(entity, "kum IST / FC", cumulative(actual_forecast)))
            lines.append(_line(entity, "Vorjahr kum", prior_year_cum))
        return lines, scenario_map

    def _headcount_lines(
        self,
        *,
        year: int,
        cutoff_month: int,
        entities: Sequence[Entity],
    ) -> tuple[list[dict[str, object]], ScenarioMap]:
        headcount_map = self.load_scenarios(
            year=year,
            area=KpiArea.HEADCOUNT,
            kpi_code="headcount",
            scenarios=(
                Scenario.PLAN,
                Scenario.IST,
                Scenario.FC,
                Scenario.PRIOR_YEAR,
                Scenario.PRIOR_YEAR_KUM,
            ),
        )
        sub_maps = [
            (
                label,
                self.load_scenarios(
                    year=year,
                    area=KpiArea.HEADCOUNT,
                    kpi_code=kpi_code,
                    scenarios=(Scenario.IST, Scenario.FC),
                ),
            )
            for kpi_code, label in HEADCOUNT_SUB_KPIS
        ]

        lines: list[dict[str, object]] = []
        for entity in entities:
            plan = self.series(headcount_map, Scenario.PLAN, entity, entities)
            ist = self.series(headcount_map, Scenario.IST, entity, entities)
            fc = self.series(headcount_map, Scenario.FC, entity, entities)

            lines.append(_line(entity, "Plan Headcount", plan))
            lines.append(_line(entity, "IST/FC headcount", apply_cutoff(ist, fc, cutoff_month)))
            for label, sub_map in sub_maps:
                sub_ist = self.series(sub_map, Scenario.IST, entity, entities)
                sub_fc = self.series(sub_map, Scenario.FC, entity, entities)
                lines.append(_line(entity, label, apply_cutoff(sub_ist, sub_fc, cutoff_month)))
            lines.append(_line(entity, "Vorjahr", self.series(headcount_map, Scenario.PRIOR_YEAR, entity, entities)))
            lines.append(
                _line(entity, "Vorjahr kum", self.series(headcount_map, Scenario.PRIOR_YEAR_KUM, entity, entities))
            )
        return lines, headcount_map

    def get_sheet(self, *, sheet: Sheet, year: int, cutoff_month: int) -> dict[str, object]:
        entities = self.catalog.list_entities()

        if sheet is Sheet.HEADCOUNT:
            lines, chart_map = self._headcount_lines(year=year, cutoff_month=cutoff_month, entities=entities)
        else:
            lines, chart_map = self._financial_lines(
                sheet=sheet,
                year=year,
                cutoff_month=cutoff_month,
                entities=entities,
            )

        return {
            "sheet": sheet.value,
            "year": year,
            "cutoffMonth": cutoff_month,
            "months": [{"month": month, "label": MONTH_LABELS[idx]} for idx, month in enumerate(MONTHS)],
            "entities": [
                {
                    "code": entity.code,
                    "name": entity.display_name,
                    "isAggregate": entity.is_aggregate,
                }
                for entity in entities
            ],
            "lines": lines,
            "charts": self._charts(chart_map, entities, cutoff_month),
        }
