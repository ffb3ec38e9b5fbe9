"""Structured parameters attached to decisions and assumptions.

A tagged union keyed by ``category``. The conflict detector compares two
parameter sets of the same category along their key dimension (timeframe,
resource type, metric) and flags incompatible values.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class _Parameters(BaseModel):
    model_config = {"extra": "forbid"}


class BudgetParameters(_Parameters):
    category: Literal["BUDGET"] = "BUDGET"
    budget_line: str | None = Field(None, description="Budget line or cost center")
    timeframe: str | None = Field(None, description="e.g. 'Q3-2025' or 'FY2026'")
    amount: float | None = Field(None, ge=0, description="Fixed amount asserted")
    min_amount: float | None = Field(None, ge=0)
    max_amount: float | None = Field(None, ge=0)
    required_amount: float | None = Field(None, ge=0)
    currency: str = "USD"
    outcome: Literal["approved", "rejected"] | None = None


class TimelineParameters(_Parameters):
    category: Literal["TIMELINE"] = "TIMELINE"
    milestone: str | None = None
    unit: Literal["days", "weeks", "months"] = "weeks"
    min_duration: float | None = Field(None, ge=0)
    max_duration: float | None = Field(None, ge=0)
    deadline: float | None = Field(None, ge=0, description="Duration until the deadline")
    outcome: Literal["met", "missed"] | None = None


class ResourceParameters(_Parameters):
    category: Literal["RESOURCE"] = "RESOURCE"
    resource_type: str
    timeframe: str | None = None
    required: float | None = Field(None, ge=0)
    available: float | None = Field(None, ge=0)
    min_quantity: float | None = Field(None, ge=0)
    max_quantity: float | None = Field(None, ge=0)
    availability: Literal["available", "unavailable"] | None = None


class MarketParameters(_Parameters):
    category: Literal["MARKET"] = "MARKET"
    metric: str
    direction: Literal["increase", "decrease", "stable"]
    timeframe: str | None = None
    magnitude: float | None = None


class GenericParameters(BaseModel):
    category: Literal["OTHER"] = "OTHER"
    values: dict = Field(default_factory=dict)


StructuredParameters = Annotated[
    Union[
        BudgetParameters,
        TimelineParameters,
        ResourceParameters,
        MarketParameters,
        GenericParameters,
    ],
    Field(discriminator="category"),
]

_adapter: TypeAdapter = TypeAdapter(StructuredParameters)


def parse_parameters(raw: dict | None):
    """Validate stored JSON back into its parameter model. None stays None."""
    if raw is None:
        return None
    return _adapter.validate_python(raw)
