"""Shared request field types."""

from __future__ import annotations

from typing import Annotated

from pydantic import BeforeValidator, Field, StrictInt


def _whole_number(value: object) -> object:
    """Accept JSON numbers with no fractional part, such as ``2025.0``."""

    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


WholeNumber = Annotated[StrictInt, BeforeValidator(_whole_number)]
Year = Annotated[WholeNumber, Field(ge=2000, le=2100)]
Month = Annotated[WholeNumber, Field(ge=1, le=12)]
