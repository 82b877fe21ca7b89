"""Instrument, LiveMatch - what the directory says we should watch."""

from __future__ import annotations

from pydantic import BaseModel, Field


class Instrument(BaseModel):
    """One outcome token of a live match."""

    token_id: str
    match_slug: str  # e.g. "nba-hou-mil-2025-11-09"
    outcome: str  # e.g. "Rockets" or "Yes"
    question: str = ""
    condition_id: str | None = None


class LiveMatch(BaseModel):
    """A match (event slug) and all outcome tokens trading on it."""

    slug: str
    question: str = ""
    instruments: list[Instrument] = Field(default_factory=list)

    @property
    def token_ids(self) -> list[str]:
        return [i.token_id for i in self.instruments]


InstrumentMapping = dict[str, Instrument]


def build_instrument_map(matches: list[LiveMatch]) -> InstrumentMapping:
    """token_id -> Instrument for every instrument of every match."""
    mapping: InstrumentMapping = {}
    for match in matches:
        for inst in match.instruments:
            mapping[inst.token_id] = inst
    return mapping
