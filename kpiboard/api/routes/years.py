"""Planning year listing endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from kpiboard.db.dependencies import get_db_session
from kpiboard.services.years_service import YearsService

router = APIRouter(tags=["years"])


@router.get("/years")
def list_years(db: Session = Depends(get_db_session)) -> dict[str, object]:
    """Years with data plus a padded selectable range around today."""

    listing = YearsService(db).list_years()
    return {"available": listing.available, "all": listing.all, "current": listing.current}
