"""
Shared building blocks for SpendWise models.

DESIGN DECISION: Python code uses snake_case, the wire uses camelCase.
Every model that crosses the HTTP boundary derives from WireModel so the
aliasing is declared once.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# Amounts are exact decimals in Python and plain numbers on the wire
Money = Annotated[
    Decimal,
    Field(ge=0, max_digits=14, decimal_places=2),
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Sums of many amounts; only the sign is bounded
Total = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class WireModel(BaseModel):
    """Base model with camelCase aliases, populated by either name."""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
