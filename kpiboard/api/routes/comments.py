"""Comment endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from sqlalchemy.orm import Session

from kpiboard.api.types import Month, Year
from kpiboard.core.auth import RequestUserContext, get_current_user_context
from kpiboard.core.rate_limit import enforce_rate_limit
from kpiboard.db.dependencies import get_db_session
from kpiboard.services.comment_service import CommentCreateData, CommentService

router = APIRouter(prefix="/comments", tags=["comments"])


class CommentCreatePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    entity_id: StrictInt = Field(alias="entityId")
    kpi_id: StrictInt | None = Field(default=None, alias="kpiId")
    year: Year
    month: Month | None = None
    content: Annotated[StrictStr, Field(min_length=1, max_length=4000)]


@router.get("")
def list_comments(
    entity_id: int | None = Query(default=None, alias="entityId"),
    year: int | None = None,
    kpi_id: int | None = Query(default=None, alias="kpiId"),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CommentService(db)
    return {"comments": service.list_comments(entity_id=entity_id, year=year, kpi_id=kpi_id)}


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(enforce_rate_limit)])
def create_comment(
    payload: CommentCreatePayload,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = CommentService(db)
    comment = service.create_comment(
        context=context,
        data=CommentCreateData(
            entity_id=payload.entity_id,
            kpi_id=payload.kpi_id,
            year=payload.year,
            month=payload.month,
            content=payload.content,
        ),
    )
    return {"success": True, "id": comment.id}


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    CommentService(db).delete_comment(context=context, comment_id=comment_id)
    return {"success": True}
