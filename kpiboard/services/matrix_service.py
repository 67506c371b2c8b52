"""Application service for 12-month matrix edits and prior-year copies."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kpiboard.core.auth import RequestUserContext, can_edit_entity
from kpiboard.core.errors import (
    BatchWriteFailed,
    Forbidden,
    InvalidOperation,
    InvalidPayload,
    NotFound,
    UnsupportedLabel,
)
from kpiboard.models.entities import Scenario
from kpiboard.repositories.catalog_repository import CatalogRepository
from kpiboard.repositories.values_repository import ValuesRepository
from kpiboard.services.audit_service import AuditAction, AuditEntityType, record_audit
from kpiboard.services.labels import SHEET_PRIMARY_KPI, EditMode, Sheet, map_label_to_kpi
from kpiboard.services.settings_service import SettingsService
from kpiboard.services.workbook_service import MONTHS, cumulative

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MatrixEditInput:
    sheet: Sheet
    year: int
    entity_code: str
    label: str
    values: Sequence[float | None]
    cutoff_month: int | None = None


@dataclass(slots=True)
class MatrixEditResult:
    updated: int
    cutoff_month: int
    scenarios: dict[int, Scenario]


@dataclass(slots=True)
class CopyPriorYearInput:
    sheet: Sheet
    source_year: int
    target_year: int
    entity_code: str | None = None


@dataclass(slots=True)
class CopyPriorYearResult:
    copied: int
    source_year: int
    target_year: int


def coerce_value(value: object) -> float:
    """Keep finite numbers; null, non-finite and non-numeric become 0."""

    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return float(value)


def classify_scenario(mode: EditMode, month: int, cutoff_month: int) -> Scenario:
    """Plan edits stay plan; other edits are actuals up to and including the cutoff."""

    if mode is EditMode.PLAN:
        return Scenario.PLAN
    return Scenario.IST if month <= cutoff_month else Scenario.FC


class MatrixService:
    """Service implementing matrix edit validation, classification and upsert."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.catalog = CatalogRepository(db)
        self.values = ValuesRepository(db)

    def _resolve_cutoff(self, override: int | None) -> int:
        if override is not None:
            return override
        return SettingsService(self.db).get_forecast_cutoff_month()

    def edit_matrix(self, *, context: RequestUserContext, data: MatrixEditInput) -> MatrixEditResult:
        if len(data.values) != len(MONTHS):
            raise InvalidPayload("invalid payload")

        if not can_edit_entity(context, data.entity_code):
            raise Forbidden("no permission to edit this entity")

        mapping = map_label_to_kpi(data.sheet, data.label)
        if mapping is None:
            raise UnsupportedLabel("unsupported edit label")

        if mapping.mode is EditMode.PLAN and not context.is_admin:
            raise Forbidden("only administrators may edit plan data")

        cutoff_month = self._resolve_cutoff(data.cutoff_month)

        entity = self.catalog.get_entity_by_code(data.entity_code)
        if entity is None:
            raise NotFound("unknown entity")
        if entity.is_aggregate:
            raise InvalidOperation("cannot edit aggregate entity")

        kpi = self.catalog.get_kpi(mapping.area, mapping.kpi_code)
        if kpi is None:
            raise NotFound("unknown kpi")

        now = datetime.utcnow()
        scenarios: dict[int, Scenario] = {}
        failed_month: int | None = None
        try:
            with self.db.begin_nested():
                for month in MONTHS:
                    failed_month = month
                    scenario = classify_scenario(mapping.mode, month, cutoff_month)
                    self.values.upsert_value(
                        year=data.year,
                        month=month,
                        entity_id=entity.id,
                        kpi_id=kpi.id,
                        scenario=scenario,
                        value=coerce_value(data.values[month - 1]),
                        updated_at=now,
                    )
                    scenarios[month] = scenario
                failed_month = None

                record_audit(
                    self.db,
                    context=context,
                    action=AuditAction.UPDATE,
                    entity_type=AuditEntityType.VALUE,
                    entity_id=entity.id,
                    entity_name=entity.display_name,
                    new_value=",".join(str(coerce_value(value)) for value in data.values),
                    details=f"{data.sheet.value}/{data.label} {data.year} (cutoff {cutoff_month})",
                )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(
                "Matrix edit for %s %s/%s %s failed at month %s; batch rolled back",
                data.entity_code,
                data.sheet.value,
                data.label,
                data.year,
                failed_month,
                exc_info=True,
            )
            raise BatchWriteFailed(
                "failed to update",
                extra={"failedMonth": failed_month, "updated": 0},
            ) from exc

        logger.info(
            "Matrix edit stored %s months for %s %s/%s %s",
            len(scenarios),
            data.entity_code,
            data.sheet.value,
            data.label,
            data.year,
        )
        return MatrixEditResult(updated=len(scenarios), cutoff_month=cutoff_month, scenarios=scenarios)

    def _month_map(self, *, year: int, entity_id: int, kpi_id: int, scenario: Scenario) -> dict[int, float]:
        return {
            row.month: row.value
            for row in self.values.list_entity_series(
                year=year, entity_id=entity_id, kpi_id=kpi_id, scenario=scenario
            )
        }

    def copy_prior_year(self, *, context: RequestUserContext, data: CopyPriorYearInput) -> CopyPriorYearResult:
        if not context.is_admin:
            raise Forbidden("only administrators may copy prior year values")

        area, kpi_code = SHEET_PRIMARY_KPI[data.sheet]
        kpi = self.catalog.get_kpi(area, kpi_code)
        if kpi is None:
            return CopyPriorYearResult(copied=0, source_year=data.source_year, target_year=data.target_year)

        entities = self.catalog.list_leaf_entities(code=data.entity_code)
        now = datetime.utcnow()
        copied = 0
        try:
            with self.db.begin_nested():
                for entity in entities:
                    ist = self._month_map(
                        year=data.source_year, entity_id=entity.id, kpi_id=kpi.id, scenario=Scenario.IST
                    )
                    plan = self._month_map(
                        year=data.source_year, entity_id=entity.id, kpi_id=kpi.id, scenario=Scenario.PLAN
                    )
                    ist_series = [ist.get(month, 0.0) for month in MONTHS]
                    ist_cumulative = cumulative(ist_series)

                    for month in MONTHS:
                        targets = (
                            (Scenario.PRIOR_YEAR_KUM, ist_cumulative[month - 1]),
                            (Scenario.PLAN, plan.get(month, 0.0)),
                            (Scenario.IST, 0.0),
                            (Scenario.FC, 0.0),
                            (Scenario.PRIOR_YEAR, ist_series[month - 1]),
                        )
                        for scenario, value in targets:
                            self.values.upsert_value(
                                year=data.target_year,
                                month=month,
                                entity_id=entity.id,
                                kpi_id=kpi.id,
                                scenario=scenario,
                                value=value,
                                updated_at=now,
                            )
                            copied += 1

                record_audit(
                    self.db,
                    context=context,
                    action=AuditAction.IMPORT,
                    entity_type=AuditEntityType.VALUE,
                    details=(
                        f"copied {data.sheet.value} {data.source_year} -> {data.target_year} "
                        f"for {len(entities)} entities"
                    ),
                )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error(
                "Prior year copy %s %s -> %s failed; batch rolled back",
                data.sheet.value,
                data.source_year,
                data.target_year,
                exc_info=True,
            )
            raise BatchWriteFailed("failed to copy prior year data", extra={"copied": 0}) from exc

        logger.info(
            "Copied %s rows for %s %s -> %s",
            copied,
            data.sheet.value,
            data.source_year,
            data.target_year,
        )
        return CopyPriorYearResult(copied=copied, source_year=data.source_year, target_year=data.target_year)
