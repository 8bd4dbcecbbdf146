"""Task (candle-close reminder) data model."""

import time
from typing import Optional
from pydantic import BaseModel, Field


def _now_millis() -> int:
    return int(time.time() * 1000)


class Task(BaseModel):
    """A recurring reminder that fires before each candle close."""

    id: Optional[str] = Field(default=None, description="Document ID")
    name: str = Field(..., min_length=1, description="Display name (e.g., 'BTC 15m')")
    period: int = Field(..., gt=0, description="Candle period in minutes")
    notify_before: int = Field(
        default=0,
        ge=0,
        alias="notifyBefore",
        description="Seconds before the close at which to notify",
    )
    enabled: bool = Field(default=True, description="Whether notifications fire")
    created_at: int = Field(
        default_factory=_now_millis,
        alias="createdAt",
        description="Creation time in epoch milliseconds",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def period_label(self) -> str:
        """Short period label such as '15m' or '4h'."""
        if self.period >= 60 and self.period % 60 == 0:
            return f"{self.period // 60}h"
        return f"{self.period}m"
