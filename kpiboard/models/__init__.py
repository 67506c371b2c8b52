"""ORM model package."""

from kpiboard.models.entities import (
    AppSetting,
    AuditLogEntry,
    Comment,
    Entity,
    Kpi,
    KpiArea,
    MonthlyValue,
    Scenario,
    User,
    UserEntityPermission,
    UserRole,
)

__all__ = [
    "AppSetting",
    "AuditLogEntry",
    "Comment",
    "Entity",
    "Kpi",
    "KpiArea",
    "MonthlyValue",
    "Scenario",
    "User",
    "UserEntityPermission",
    "UserRole",
]
