"""Process-wide settings endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from kpiboard.api.types import Month
from kpiboard.core.auth import RequestUserContext, require_admin
from kpiboard.core.rate_limit import enforce_rate_limit
from kpiboard.db.dependencies import get_db_session
from kpiboard.services.settings_service import SettingsService

router = APIRouter(prefix="/settings", tags=["settings"])


class ForecastCutoffPayload(BaseModel):
    month: Month


@router.get("/forecast-cutoff")
def get_forecast_cutoff(db: Session = Depends(get_db_session)) -> dict[str, int]:
    return {"cutoffMonth": SettingsService(db).get_forecast_cutoff_month()}


@router.put("/forecast-cutoff", dependencies=[Depends(enforce_rate_limit)])
def put_forecast_cutoff(
    payload: ForecastCutoffPayload,
    context: RequestUserContext = Depends(require_admin),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    month = SettingsService(db).set_forecast_cutoff_month(payload.month, context=context)
    return {"ok": True, "cutoffMonth": month}
