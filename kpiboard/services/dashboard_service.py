"""Plan versus actual/forecast views: single-entity dashboard and entity comparison."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from sqlalchemy.orm import Session

from kpiboard.core.auth import RequestUserContext, can_view_entity
from kpiboard.core.errors import Forbidden, NotFound
from kpiboard.models.entities import Entity, KpiArea, Scenario
from kpiboard.services.labels import SHEET_PRIMARY_KPI, Sheet
from kpiboard.services.workbook_service import MONTHS, ScenarioMap, WorkbookService, apply_cutoff, cumulative

logger = logging.getLogger(__name__)

DASHBOARD_SCENARIOS = (Scenario.PLAN, Scenario.IST, Scenario.FC, Scenario.PRIOR_YEAR_KUM)
COMPARE_SCENARIOS = (Scenario.PLAN, Scenario.IST, Scenario.FC)

# compare key -> KPI area; headcount is averaged, the rest summed
COMPARE_AREAS: dict[str, KpiArea] = {
    "umsatz": KpiArea.UMSATZ,
    "ebit": KpiArea.ERTRAG,
    "headcount": KpiArea.HEADCOUNT,
}


def safe_divide(numerator: float, denominator: float) -> float:
    if not math.isfinite(numerator) or not math.isfinite(denominator) or denominator == 0:
        return 0.0
    return numerator / denominator


def range_total(series: Sequence[float], month_from: int, month_to: int) -> float:
    return sum(series[month_from - 1 : month_to])


def range_average(series: Sequence[float], month_from: int, month_to: int) -> float:
    """Average over months with a positive value; empty months do not dilute it."""

    staffed = [value for value in series[month_from - 1 : month_to] if value > 0]
    return sum(staffed) / len(staffed) if staffed else 0.0


def _primary_kpi(area: KpiArea) -> str:
    return SHEET_PRIMARY_KPI[Sheet(area.value)][1]


class DashboardService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.workbook = WorkbookService(db)
        self.catalog = self.workbook.catalog

    def _load(self, area: KpiArea, year: int, scenarios: Sequence[Scenario]) -> ScenarioMap:
        return self.workbook.load_scenarios(
            year=year,
            area=area,
            kpi_code=_primary_kpi(area),
            scenarios=scenarios,
        )

    def _plan_and_actual(
        self,
        scenario_map: ScenarioMap,
        entity: Entity,
        entities: Sequence[Entity],
        cutoff_month: int,
    ) -> tuple[list[float], list[float]]:
        plan = self.workbook.series(scenario_map, Scenario.PLAN, entity, entities)
        ist = self.workbook.series(scenario_map, Scenario.IST, entity, entities)
        fc = self.workbook.series(scenario_map, Scenario.FC, entity, entities)
        return plan, apply_cutoff(ist, fc, cutoff_month)

    def get_dashboard(
        self,
        *,
        context: RequestUserContext,
        area: KpiArea,
        entity_code: str,
        year: int,
        cutoff_month: int,
    ) -> dict[str, object]:
        """Monthly and cumulative plan vs. actual/forecast of one entity.

        Ertrag additionally carries the EBIT margin against Umsatz.
        """

        entity = self.catalog.get_entity_by_code(entity_code)
        if entity is None:
            raise NotFound("unknown entity")
        if not can_view_entity(context, entity.code):
            raise Forbidden("no permission to view this entity")

        entities = self.catalog.list_entities()
        scenario_map = self._load(area, year, DASHBOARD_SCENARIOS)
        plan, actual_forecast = self._plan_and_actual(scenario_map, entity, entities, cutoff_month)
        prior_year_cum = self.workbook.series(scenario_map, Scenario.PRIOR_YEAR_KUM, entity, entities)

        result: dict[str, object] = {
            "area": area.value,
            "entityCode": entity.code,
            "year": year,
            "cutoffMonth": cutoff_month,
            "months": list(MONTHS),
            "series": {
                "plan": plan,
                "actualForecast": actual_forecast,
                "priorYearCum": prior_year_cum,
            },
            "cumulative": {
                "plan": cumulative(plan),
                "actualForecast": cumulative(actual_forecast),
            },
        }

        if area is KpiArea.ERTRAG:
            revenue_map = self._load(KpiArea.UMSATZ, year, COMPARE_SCENARIOS)
            revenue_plan, revenue_actual = self._plan_and_actual(revenue_map, entity, entities, cutoff_month)
            cum_plan, cum_actual = cumulative(plan), cumulative(actual_forecast)
            cum_revenue_plan, cum_revenue_actual = cumulative(revenue_plan), cumulative(revenue_actual)
            result["derived"] = {
                "margin": {
                    "series": {
                        "plan": [safe_divide(e, r) for e, r in zip(plan, revenue_plan)],
                        "actualForecast": [safe_divide(e, r) for e, r in zip(actual_forecast, revenue_actual)],
                    },
                    "cumulative": {
                        "plan": [safe_divide(e, r) for e, r in zip(cum_plan, cum_revenue_plan)],
                        "actualForecast": [safe_divide(e, r) for e, r in zip(cum_actual, cum_revenue_actual)],
                    },
                }
            }
        return result

    def compare(
        self,
        *,
        context: RequestUserContext,
        year: int,
        entity_codes: Sequence[str],
        month_from: int,
        month_to: int,
        cutoff_month: int,
    ) -> dict[str, object]:
        """Side-by-side totals for the requested entities over a month range.

        Codes that are unknown or not viewable by the caller are left out.
        """

        entities = self.catalog.list_entities()
        by_code = {entity.code: entity for entity in entities}
        selected: list[Entity] = []
        for code in dict.fromkeys(entity_codes):
            entity = by_code.get(code)
            if entity is not None and can_view_entity(context, code):
                selected.append(entity)

        skipped = len(set(entity_codes)) - len(selected)
        if skipped:
            logger.debug("Compare for %s skipped %s unknown or hidden entities", context.username, skipped)

        maps: dict[str, ScenarioMap] = {}
        if selected:
            maps = {key: self._load(area, year, COMPARE_SCENARIOS) for key, area in COMPARE_AREAS.items()}

        rows: list[dict[str, object]] = []
        for entity in selected:
            row: dict[str, object] = {
                "code": entity.code,
                "name": entity.display_name,
                "isAggregate": entity.is_aggregate,
            }
            monthly: dict[str, dict[str, list[float]]] = {}
            for key, scenario_map in maps.items():
                plan, actual_forecast = self._plan_and_actual(scenario_map, entity, entities, cutoff_month)
                reduce = range_average if key == "headcount" else range_total
                plan_total = reduce(plan, month_from, month_to)
                actual_total = reduce(actual_forecast, month_from, month_to)
                row[key] = {
                    "plan": plan_total,
                    "actualForecast": actual_total,
                    "delta": actual_total - plan_total,
                }
                monthly[key] = {
                    "plan": plan[month_from - 1 : month_to],
                    "actualForecast": actual_forecast[month_from - 1 : month_to],
                }

            umsatz, ebit = row["umsatz"], row["ebit"]
            row["margin"] = {
                "plan": safe_divide(ebit["plan"], umsatz["plan"]) * 100,
                "actualForecast": safe_divide(ebit["actualForecast"], umsatz["actualForecast"]) * 100,
            }
            row["monthly"] = monthly
            rows.append(row)

        return {
            "year": year,
            "monthFrom": month_from,
            "monthTo": month_to,
            "cutoffMonth": cutoff_month,
            "entities": rows,
        }
