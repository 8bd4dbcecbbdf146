"""JournalEntry data model."""

from typing import Literal, Optional
from pydantic import BaseModel, Field

Direction = Literal["Long", "Short"]
TradeStatus = Literal["Open", "Closed", "Win", "Loss"]

# Statuses whose P&L is reflected in the account balance. "Open" never is.
SETTLEMENT_STATUSES = frozenset({"Closed", "Win", "Loss"})


class JournalEntry(BaseModel):
    """Represents a single trade in the journal."""

    id: Optional[str] = Field(default=None, description="Document ID")
    date: int = Field(..., description="Trade date in epoch milliseconds")
    symbol: str = Field(..., min_length=1, description="Traded symbol")
    instrument_id: Optional[str] = Field(
        default=None, alias="instrumentId", description="Referenced instrument"
    )
    account_id: Optional[str] = Field(
        default=None, alias="accountId", description="Referenced account"
    )
    strategy_id: Optional[str] = Field(
        default=None, alias="strategyId", description="Referenced strategy"
    )
    direction: Direction = Field(..., description="Trade direction")
    entry_price: float = Field(..., alias="entryPrice", description="Entry price")
    exit_price: Optional[float] = Field(
        default=None, alias="exitPrice", description="Exit price"
    )
    stop_loss: Optional[float] = Field(
        default=None, alias="stopLoss", description="Stop loss price"
    )
    position_size: Optional[float] = Field(
        default=1, alias="positionSize", description="Number of contracts"
    )
    status: TradeStatus = Field(default="Open", description="Trade status")
    pnl: Optional[float] = Field(default=None, description="P&L in points")
    usd_pnl: float = Field(default=0.0, alias="usdPnl", description="Derived P&L in USD")
    risk_reward: Optional[float] = Field(
        default=None, alias="riskReward", description="Derived reward-to-risk ratio"
    )
    notes: Optional[str] = Field(default=None, description="User notes")
    image_file_names: list[str] = Field(
        default_factory=list,
        alias="imageFileNames",
        description="Attached screenshot filenames, in order",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @property
    def is_settled(self) -> bool:
        """Whether this entry's USD P&L is reflected in its account balance."""
        return (
            self.status in SETTLEMENT_STATUSES
            and self.exit_price is not None
            and bool(self.account_id)
        )
