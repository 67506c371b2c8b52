"""Known and selectable planning years."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kpiboard.repositories.values_repository import ValuesRepository

logger = logging.getLogger(__name__)

YEAR_PADDING = 5


@dataclass(slots=True)
class YearsListing:
    available: list[int]
    all: list[int]
    current: int


def build_years_listing(present_years: Sequence[int], current_year: int) -> YearsListing:
    """Pad the stored years with a five year window around the current year."""

    known = set(present_years) | {current_year}
    max_year = max(known) + YEAR_PADDING
    min_year = min(known) - YEAR_PADDING
    return YearsListing(
        available=list(present_years),
        all=list(range(max_year, min_year - 1, -1)),
        current=current_year,
    )


class YearsService:
    def __init__(self, db: Session, *, today: Callable[[], date] = date.today) -> None:
        self.repo = ValuesRepository(db)
        self.today = today

    def list_years(self) -> YearsListing:
        current_year = self.today().year
        try:
            present = self.repo.distinct_years()
        except SQLAlchemyError:
            logger.exception("Could not read stored years; falling back to the default window")
            present = []
        return build_years_listing(present, current_year)
