"""Account data model."""

from typing import Optional
from pydantic import BaseModel, Field


class Account(BaseModel):
    """A trading account whose balance tracks settled journal P&L."""

    id: Optional[str] = Field(default=None, description="Document ID")
    name: str = Field(..., min_length=1, description="Account name")
    balance: float = Field(default=0.0, description="Running balance in USD")

    model_config = {"frozen": True, "populate_by_name": True}
