"""Repository helpers for comments and the audit trail."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, aliased

from kpiboard.models.entities import AuditLogEntry, Comment, Entity, Kpi, User


class ActivityRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Comments ----------
    def get_comment(self, comment_id: int) -> Comment | None:
        return self.db.scalar(select(Comment).where(Comment.id == comment_id))

    def list_comments(
        self,
        *,
        entity_id: int | None = None,
        year: int | None = None,
        kpi_id: int | None = None,
    ) -> list[tuple[Comment, str | None, str | None, str | None]]:
        """Return comments with author, entity and KPI display names."""

        author = aliased(User)
        query = (
            select(Comment, author.display_name, Entity.display_name, Kpi.display_name)
            .outerjoin(author, author.id == Comment.user_id)
            .outerjoin(Entity, Entity.id == Comment.entity_id)
            .outerjoin(Kpi, Kpi.id == Comment.kpi_id)
        )
        if entity_id is not None:
            query = query.where(Comment.entity_id == entity_id)
        if year is not None:
            query = query.where(Comment.year == year)
        if kpi_id is not None:
            query = query.where(Comment.kpi_id == kpi_id)
        rows = self.db.execute(query.order_by(Comment.created_at.desc(), Comment.id.desc())).all()
        return [tuple(row) for row in rows]

    def add_comment(self, comment: Comment) -> Comment:
        self.db.add(comment)
        self.db.flush()
        return comment

    def delete_comment(self, comment: Comment) -> None:
        self.db.delete(comment)
        self.db.flush()

    # ---------- Audit log ----------
    def add_audit_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_audit_entries(
        self,
        *,
        limit: int,
        offset: int,
        action: str | None = None,
        entity_type: str | None = None,
    ) -> list[AuditLogEntry]:
        query = select(AuditLogEntry)
        if action:
            query = query.where(AuditLogEntry.action == action)
        if entity_type:
            query = query.where(AuditLogEntry.entity_type == entity_type)
        return self.db.scalars(
            query.order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
            .limit(limit)
            .offset(offset)
        ).all()
