"""Repository helpers for entity/KPI reference data and key/value settings."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from kpiboard.models.entities import AppSetting, Entity, Kpi, KpiArea


class CatalogRepository:
    """Read access to the static catalog plus the settings table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Entities ----------
    def get_entity(self, entity_id: int) -> Entity | None:
        return self.db.scalar(select(Entity).where(Entity.id == entity_id))

    def get_entity_by_code(self, code: str) -> Entity | None:
        return self.db.scalar(select(Entity).where(Entity.code == code))

    def list_entities(self) -> list[Entity]:
        return self.db.scalars(
            select(Entity).order_by(
                Entity.is_aggregate.desc(),
                Entity.sort_order.asc(),
                Entity.display_name.asc(),
            )
        ).all()

    def list_leaf_entities(self, *, code: str | None = None) -> list[Entity]:
        query = select(Entity).where(Entity.is_aggregate.is_(False))
        if code is not None:
            query = query.where(Entity.code == code)
        return self.db.scalars(query.order_by(Entity.sort_order.asc(), Entity.code.asc())).all()

    # ---------- KPIs ----------
    def get_kpi(self, area: KpiArea, code: str) -> Kpi | None:
        return self.db.scalar(select(Kpi).where(Kpi.area == area, Kpi.code == code))

    def get_kpi_by_id(self, kpi_id: int) -> Kpi | None:
        return self.db.scalar(select(Kpi).where(Kpi.id == kpi_id))

    def list_kpis(self) -> list[Kpi]:
        return self.db.scalars(select(Kpi).order_by(Kpi.area.asc(), Kpi.code.asc())).all()

    # ---------- Settings ----------
    def get_setting(self, key: str) -> str | None:
        return self.db.scalar(select(AppSetting.value).where(AppSetting.key == key))

    def set_setting(self, key: str, value: str) -> AppSetting:
        row = self.db.get(AppSetting, key)
        if row is None:
            row = AppSetting(key=key, value=value)
            self.db.add(row)
        else:
            row.value = value
        self.db.flush()
        return row
