"""Comments attached to entity/year (optionally KPI and month) cells."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from kpiboard.core.auth import RequestUserContext, can_view_entity
from kpiboard.core.errors import Forbidden, InvalidPayload, NotFound
from kpiboard.models.entities import Comment
from kpiboard.repositories.activity_repository import ActivityRepository
from kpiboard.repositories.catalog_repository import CatalogRepository
from kpiboard.services.audit_service import AuditAction, AuditEntityType, record_audit

logger = logging.getLogger(__name__)

AUDIT_PREVIEW_LENGTH = 50


@dataclass(slots=True)
class CommentCreateData:
    entity_id: int
    year: int
    content: str
    kpi_id: int | None = None
    month: int | None = None


class CommentService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = ActivityRepository(db)
        self.catalog = CatalogRepository(db)

    @staticmethod
    def serialize_comment(
        comment: Comment,
        author_name: str | None,
        entity_name: str | None,
        kpi_name: str | None,
    ) -> dict[str, object]:
        return {
            "id": comment.id,
            "userId": comment.user_id,
            "entityId": comment.entity_id,
            "kpiId": comment.kpi_id,
            "year": comment.year,
            "month": comment.month,
            "content": comment.content,
            "createdAt": comment.created_at.isoformat(),
            "updatedAt": comment.updated_at.isoformat(),
            "authorName": author_name,
            "entityName": entity_name,
            "kpiName": kpi_name,
        }

    def list_comments(
        self,
        *,
        entity_id: int | None = None,
        year: int | None = None,
        kpi_id: int | None = None,
    ) -> list[dict[str, object]]:
        return [
            self.serialize_comment(*row)
            for row in self.repo.list_comments(entity_id=entity_id, year=year, kpi_id=kpi_id)
        ]

    def create_comment(self, *, context: RequestUserContext, data: CommentCreateData) -> Comment:
        content = data.content.strip()
        if not content:
            raise InvalidPayload("invalid payload")

        entity = self.catalog.get_entity(data.entity_id)
        if entity is None:
            raise NotFound("unknown entity")
        if not can_view_entity(context, entity.code):
            raise Forbidden("no permission to comment on this entity")
        if data.kpi_id is not None and self.catalog.get_kpi_by_id(data.kpi_id) is None:
            raise NotFound("unknown kpi")

        now = datetime.utcnow()
        comment = self.repo.add_comment(
            Comment(
                user_id=context.user_id,
                entity_id=entity.id,
                kpi_id=data.kpi_id,
                year=data.year,
                month=data.month,
                content=content,
                created_at=now,
                updated_at=now,
            )
        )
        period = f"{data.year}/{data.month}" if data.month else str(data.year)
        record_audit(
            self.db,
            context=context,
            action=AuditAction.CREATE,
            entity_type=AuditEntityType.COMMENT,
            entity_id=entity.id,
            entity_name=entity.display_name,
            details=f"comment for {period}: {comment.content[:AUDIT_PREVIEW_LENGTH]}",
        )
        self.db.commit()
        self.db.refresh(comment)
        logger.info("Comment %s created by %s on %s", comment.id, context.username, entity.code)
        return comment

    def delete_comment(self, *, context: RequestUserContext, comment_id: int) -> None:
        comment = self.repo.get_comment(comment_id)
        if comment is None:
            raise NotFound("comment not found")
        if comment.user_id != context.user_id and not context.is_admin:
            raise Forbidden("only the author or an administrator may delete this comment")

        self.repo.delete_comment(comment)
        record_audit(
            self.db,
            context=context,
            action=AuditAction.DELETE,
            entity_type=AuditEntityType.COMMENT,
            entity_id=comment_id,
        )
        self.db.commit()
        logger.info("Comment %s deleted by %s", comment_id, context.username)
