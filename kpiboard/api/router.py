"""Top-level API router."""

from fastapi import APIRouter

from kpiboard.api.routes.admin import router as admin_router
from kpiboard.api.routes.audit import router as audit_router
from kpiboard.api.routes.catalog import router as catalog_router
from kpiboard.api.routes.comments import router as comments_router
from kpiboard.api.routes.dashboard import router as dashboard_router
from kpiboard.api.routes.health import router as health_router
from kpiboard.api.routes.matrix import router as matrix_router
from kpiboard.api.routes.me import router as me_router
from kpiboard.api.routes.settings import router as settings_router
from kpiboard.api.routes.workbook import router as workbook_router
from kpiboard.api.routes.years import router as years_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(catalog_router)
api_router.include_router(workbook_router)
api_router.include_router(dashboard_router)
api_router.include_router(matrix_router)
api_router.include_router(years_router)
api_router.include_router(settings_router)
api_router.include_router(comments_router)
api_router.include_router(audit_router)
api_router.include_router(admin_router)
