"""Instrument data model."""

from typing import Optional
from pydantic import BaseModel, Field


class Instrument(BaseModel):
    """A tradable contract and the USD value of one point of movement."""

    id: Optional[str] = Field(default=None, description="Document ID")
    name: str = Field(..., min_length=1, description="Instrument name (e.g., 'NQ')")
    point_value_usd: float = Field(
        ..., ge=0, alias="pointValueUSD", description="USD value of one point per contract"
    )

    model_config = {"frozen": True, "populate_by_name": True}
