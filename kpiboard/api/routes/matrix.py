"""Matrix write endpoints for plan and actual/forecast values."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictStr
from sqlalchemy.orm import Session

from kpiboard.api.types import Month, Year
from kpiboard.core.auth import RequestUserContext, get_current_user_context
from kpiboard.core.rate_limit import enforce_rate_limit
from kpiboard.db.dependencies import get_db_session
from kpiboard.services.labels import Sheet
from kpiboard.services.matrix_service import CopyPriorYearInput, MatrixEditInput, MatrixService

router = APIRouter(prefix="/matrix", tags=["matrix"])

Code = Annotated[StrictStr, Field(min_length=1)]


class MatrixEditPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sheet: Sheet
    year: Year
    entity_code: Code = Field(alias="entityCode")
    label: Code
    values: list[StrictFloat | None] = Field(min_length=12, max_length=12)
    cutoff_month: Month | None = Field(default=None, alias="cutoffMonth")


class CopyPriorYearPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sheet: Sheet
    source_year: Year = Field(alias="sourceYear")
    target_year: Year = Field(alias="targetYear")
    entity_code: Code | None = Field(default=None, alias="entityCode")


def _matrix_service(db: Session) -> MatrixService:
    return MatrixService(db)


@router.put("", dependencies=[Depends(enforce_rate_limit)])
def put_matrix_row(
    payload: MatrixEditPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _matrix_service(db)
    result = service.edit_matrix(
        context=context,
        data=MatrixEditInput(
            sheet=payload.sheet,
            year=payload.year,
            entity_code=payload.entity_code,
            label=payload.label,
            values=payload.values,
            cutoff_month=payload.cutoff_month,
        ),
    )
    return {"ok": True, "updated": result.updated}


@router.post("", dependencies=[Depends(enforce_rate_limit)])
def copy_prior_year(
    payload: CopyPriorYearPayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _matrix_service(db)
    result = service.copy_prior_year(
        context=context,
        data=CopyPriorYearInput(
            sheet=payload.sheet,
            source_year=payload.source_year,
            target_year=payload.target_year,
            entity_code=payload.entity_code,
        ),
    )
    return {
        "ok": True,
        "copied": result.copied,
        "sourceYear": result.source_year,
        "targetYear": result.target_year,
    }
