"""Strategy data model."""

from typing import Optional
from pydantic import BaseModel, Field


class Strategy(BaseModel):
    """A named trading setup that journal entries can be tagged with."""

    id: Optional[str] = Field(default=None, description="Document ID")
    name: str = Field(..., min_length=1, description="Strategy name")
    description: str = Field(default="", description="Free-form description")

    model_config = {"frozen": True, "populate_by_name": True}
