"""Read-only entity and KPI catalog endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kpiboard.db.dependencies import get_db_session
from kpiboard.models.entities import Entity, Kpi
from kpiboard.repositories.catalog_repository import CatalogRepository

router = APIRouter(tags=["catalog"])


def _serialize_entity(entity: Entity) -> dict[str, object]:
    return {
        "id": entity.id,
        "code": entity.code,
        "displayName": entity.display_name,
        "sortOrder": entity.sort_order,
        "isAggregate": entity.is_aggregate,
    }


def _serialize_kpi(kpi: Kpi) -> dict[str, object]:
    return {
        "id": kpi.id,
        "area": kpi.area.value,
        "code": kpi.code,
        "displayName": kpi.display_name,
        "isDerived": kpi.is_derived,
    }


@router.get("/entities")
def list_entities(db: Session = Depends(get_db_session)) -> dict[str, object]:
    return {"items": [_serialize_entity(entity) for entity in CatalogRepository(db).list_entities()]}


@router.get("/kpis")
def list_kpis(db: Session = Depends(get_db_session)) -> dict[str, object]:
    return {"items": [_serialize_kpi(kpi) for kpi in CatalogRepository(db).list_kpis()]}
