"""TradeActivity - one trade from a watched wallet's activity feed."""

from __future__ import annotations

from pydantic import BaseModel, Field


class TradeActivity(BaseModel):
    tx_hash: str = Field(..., min_length=1)
    timestamp: int  # ms epoch
    side: str = Field(..., pattern="^(BUY|SELL)$")
    size: float = Field(..., ge=0)  # shares
    usdc_size: float = Field(0.0, ge=0)
    price: float = Field(..., ge=0, le=1)
    title: str = ""
    outcome: str = ""
    event_slug: str = ""
    pseudonym: str = ""
    asset: str = ""  # token id

    @property
    def event_url(self) -> str:
        return f"https://polymarket.com/event/{self.event_slug}"
