"""Shared fixtures: fake clock, detector config, instrument mapping."""

import pytest

from polywhale.models import DetectorConfig, Instrument


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return DetectorConfig(
        min_size=10000,
        min_price=0.05,
        max_price=0.95,
        alert_age_sec=120,
        delta_tolerance=0.10,
        min_impact_percent=0.60,
        depth_cap=50,
        stale_after_sec=300,
    )


@pytest.fixture
def instruments():
    return {
        "tok-a": Instrument(
            token_id="tok-a",
            match_slug="nba-hou-mil-2025-11-09",
            outcome="Rockets",
            question="Rockets vs. Bucks",
        ),
        "tok-b": Instrument(
            token_id="tok-b",
            match_slug="nba-hou-mil-2025-11-09",
            outcome="Bucks",
            question="Rockets vs. Bucks",
        ),
    }
