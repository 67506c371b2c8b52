"""Forecast cutoff setting stored in the key/value settings table."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from kpiboard.core.auth import RequestUserContext
from kpiboard.core.config import get_settings
from kpiboard.repositories.catalog_repository import CatalogRepository
from kpiboard.services.audit_service import AuditAction, AuditEntityType, record_audit

logger = logging.getLogger(__name__)

FORECAST_CUTOFF_KEY = "forecast_cutoff_month"


def parse_cutoff_month(raw: str | None, default: int) -> int:
    """Parse a stored month, falling back to ``default`` when unusable."""

    if not raw:
        return default
    try:
        month = int(raw.strip())
    except ValueError:
        return default
    if month < 1 or month > 12:
        return default
    return month


class SettingsService:
    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = CatalogRepository(db)
        self.settings = get_settings()

    def get_forecast_cutoff_month(self) -> int:
        raw = self.repo.get_setting(FORECAST_CUTOFF_KEY)
        return parse_cutoff_month(raw, self.settings.forecast_cutoff_default)

    def set_forecast_cutoff_month(self, month: int, *, context: RequestUserContext | None = None) -> int:
        previous = self.repo.get_setting(FORECAST_CUTOFF_KEY)
        self.repo.set_setting(FORECAST_CUTOFF_KEY, str(month))
        record_audit(
            self.db,
            context=context,
            action=AuditAction.UPDATE,
            entity_type=AuditEntityType.SETTINGS,
            entity_name=FORECAST_CUTOFF_KEY,
            old_value=previous,
            new_value=str(month),
        )
        self.db.commit()
        logger.info("Forecast cutoff month set to %s (was %s)", month, previous)
        return month
