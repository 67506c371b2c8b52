"""Repository helpers for the monthly values fact table."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from kpiboard.models.entities import Entity, MonthlyValue, Scenario


class ValuesRepository:
    """Persistence operations on ``values_monthly``."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_value(
        self,
        *,
        year: int,
        month: int,
        entity_id: int,
        kpi_id: int,
        scenario: Scenario,
    ) -> MonthlyValue | None:
        return self.db.scalar(
            select(MonthlyValue).where(
                MonthlyValue.year == year,
                MonthlyValue.month == month,
                MonthlyValue.entity_id == entity_id,
                MonthlyValue.kpi_id == kpi_id,
                MonthlyValue.scenario == scenario,
            )
        )

    def upsert_value(
        self,
        *,
        year: int,
        month: int,
        entity_id: int,
        kpi_id: int,
        scenario: Scenario,
        value: float,
        updated_at: datetime,
    ) -> MonthlyValue:
        """Insert the cell or overwrite value and timestamp together."""

        row = self.get_value(
            year=year,
            month=month,
            entity_id=entity_id,
            kpi_id=kpi_id,
            scenario=scenario,
        )
        if row is None:
            row = MonthlyValue(
                year=year,
                month=month,
                entity_id=entity_id,
                kpi_id=kpi_id,
                scenario=scenario,
                value=value,
                updated_at=updated_at,
            )
            self.db.add(row)
        else:
            row.value = value
            row.updated_at = updated_at
        self.db.flush()
        return row

    def list_entity_series(
        self,
        *,
        year: int,
        entity_id: int,
        kpi_id: int,
        scenario: Scenario,
    ) -> list[MonthlyValue]:
        return self.db.scalars(
            select(MonthlyValue)
            .where(
                MonthlyValue.year == year,
                MonthlyValue.entity_id == entity_id,
                MonthlyValue.kpi_id == kpi_id,
                MonthlyValue.scenario == scenario,
            )
            .order_by(MonthlyValue.month.asc())
        ).all()

    def list_scenario_values(
        self,
        *,
        year: int,
        kpi_id: int,
        scenario: Scenario,
    ) -> list[tuple[str, int, float]]:
        """Return ``(entity_code, month, value)`` rows for one KPI scenario."""

        rows = self.db.execute(
            select(Entity.code, MonthlyValue.month, MonthlyValue.value)
            .join(Entity, Entity.id == MonthlyValue.entity_id)
            .where(
                MonthlyValue.year == year,
                MonthlyValue.kpi_id == kpi_id,
                MonthlyValue.scenario == scenario,
            )
        ).all()
        return [(code, month, value) for code, month, value in rows]

    def distinct_years(self) -> list[int]:
        return list(
            self.db.scalars(
                select(MonthlyValue.year).distinct().order_by(MonthlyValue.year.desc())
            ).all()
        )

