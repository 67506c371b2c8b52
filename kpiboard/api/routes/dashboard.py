"""Plan versus actual/forecast read endpoints."""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kpiboard.core.auth import RequestUserContext, get_current_user_context
from kpiboard.core.errors import InvalidPayload
from kpiboard.db.dependencies import get_db_session
from kpiboard.models.entities import KpiArea
from kpiboard.services.dashboard_service import DashboardService
from kpiboard.services.settings_service import SettingsService

router = APIRouter(tags=["dashboard"])

YearQuery = Annotated[int | None, Query(ge=2000, le=2100)]
CutoffQuery = Annotated[int | None, Query(alias="cutoffMonth", ge=1, le=12)]


def _resolve(db: Session, year: int | None, cutoff_month: int | None) -> tuple[int, int]:
    resolved_year = year if year is not None else date.today().year
    if cutoff_month is None:
        cutoff_month = SettingsService(db).get_forecast_cutoff_month()
    return resolved_year, cutoff_month


@router.get("/dashboard")
def get_dashboard(
    area: KpiArea,
    entity: Annotated[str, Query(min_length=1)],
    year: YearQuery = None,
    cutoff_month: CutoffQuery = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    resolved_year, cutoff_month = _resolve(db, year, cutoff_month)
    return DashboardService(db).get_dashboard(
        context=context,
        area=area,
        entity_code=entity,
        year=resolved_year,
        cutoff_month=cutoff_month,
    )


@router.get("/compare")
def compare_entities(
    entities: str = "",
    year: YearQuery = None,
    month_from: Annotated[int, Query(alias="monthFrom", ge=1, le=12)] = 1,
    month_to: Annotated[int, Query(alias="monthTo", ge=1, le=12)] = 12,
    cutoff_month: CutoffQuery = None,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    """Compare comma-separated entity codes over ``monthFrom..monthTo``."""

    if month_from > month_to:
        raise InvalidPayload("invalid query")

    resolved_year, cutoff_month = _resolve(db, year, cutoff_month)
    codes = [code.strip() for code in entities.split(",") if code.strip()]
    return DashboardService(db).compare(
        context=context,
        year=resolved_year,
        entity_codes=codes,
        month_from=month_from,
        month_to=month_to,
        cutoff_month=cutoff_month,
    )
