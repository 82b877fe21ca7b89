"""WhaleAlert - emitted when a tracked jump outlives the alert age."""

from __future__ import annotations

from pydantic import BaseModel, Field


class WhaleAlert(BaseModel):
    timestamp: str  # ISO-8601 UTC
    match_id: str  # match slug
    outcome_label: str
    question: str = ""
    instrument_id: str
    price: float = Field(..., ge=0, le=1)
    size: float = Field(..., gt=0)  # tracked delta, not the whole level
    side: str = Field(..., pattern="^(BUY|SELL)$")
    age_seconds: int = Field(..., ge=0)

    @property
    def dedup_key(self) -> str:
        return f"{self.instrument_id}_{self.price:.2f}"

    @property
    def notional(self) -> float:
        return self.size * self.price

    @property
    def event_url(self) -> str:
        return f"https://polymarket.com/event/{self.match_id}"
