"""DetectorConfig - validated engine thresholds."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class DetectorConfig(BaseModel):
    min_size: float = Field(10000, gt=0)
    min_price: float = Field(0.05, ge=0, le=1)
    max_price: float = Field(0.95, ge=0, le=1)
    alert_age_sec: float = Field(120, ge=0)
    delta_tolerance: float = Field(0.10, ge=0, le=1)
    min_impact_percent: float = Field(0.60, ge=0)
    depth_cap: int = Field(50, ge=1)
    stale_after_sec: float = Field(300, gt=0)
    tracked_sides: list[str] = Field(default_factory=lambda: ["BUY"])

    @model_validator(mode="after")
    def _check(self) -> DetectorConfig:
        if self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")
        for side in self.tracked_sides:
            if side not in ("BUY", "SELL"):
                raise ValueError(f"unknown side in tracked_sides: {side}")
        return self
