"""Workbook sheet read endpoint."""

from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from kpiboard.db.dependencies import get_db_session
from kpiboard.services.labels import Sheet
from kpiboard.services.settings_service import SettingsService
from kpiboard.services.workbook_service import WorkbookService

router = APIRouter(tags=["workbook"])


@router.get("/workbook")
def get_workbook_sheet(
    sheet: Sheet,
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
    cutoff_month: Annotated[int | None, Query(alias="cutoffMonth", ge=1, le=12)] = None,
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    resolved_year = year if year is not None else date.today().year
    if cutoff_month is None:
        cutoff_month = SettingsService(db).get_forecast_cutoff_month()
    return WorkbookService(db).get_sheet(sheet=sheet, year=resolved_year, cutoff_month=cutoff_month)
