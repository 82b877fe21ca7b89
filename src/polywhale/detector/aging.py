"""Fixed-interval tasks - the aging tick that promotes tracked jumps to alerts, and friends."""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable

import structlog

from polywhale.detector.delta import DeltaDetector
from polywhale.models.alert import WhaleAlert

log = structlog.get_logger(__name__)


async def run_periodic(
    name: str,
    interval_sec: float,
    fn: Callable[[], Any | Awaitable[Any]],
    stop_event: asyncio.Event,
    *,
    run_immediately: bool = False,
) -> None:
    """Call fn every interval_sec until stop_event is set. Errors are logged, the loop keeps going."""
    if not run_immediately and await _wait(stop_event, interval_sec):
        return
    while not stop_event.is_set():
        try:
            result = fn()
            if inspect.isawaitable(result):
                await result
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.exception("periodic_task_error", task=name, error=str(e))
        if await _wait(stop_event, interval_sec):
            break
    log.debug("periodic_task_stopped", task=name)


async def _wait(stop_event: asyncio.Event, timeout: float) -> bool:
    """Sleep up to timeout; True if stop_event fired meanwhile."""
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        return False


class AgingScheduler:
    """Scans the detector on a fixed period and hands every promoted alert to on_alert."""

    def __init__(
        self,
        detector: DeltaDetector,
        on_alert: Callable[[WhaleAlert], None],
        interval_sec: float = 1.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.detector = detector
        self.on_alert = on_alert
        self.interval_sec = interval_sec
        self._clock = clock

    def tick(self, now: float | None = None) -> list[WhaleAlert]:
        now = self._clock() if now is None else now
        alerts = self.detector.check_ages(now)
        for alert in alerts:
            log.info(
                "whale_alert",
                match=alert.match_id,
                outcome=alert.outcome_label,
                price=alert.price,
                size=alert.size,
                side=alert.side,
                age_seconds=alert.age_seconds,
            )
            self.on_alert(alert)
        return alerts

    async def run(self, stop_event: asyncio.Event) -> None:
        await run_periodic("aging", self.interval_sec, self.tick, stop_event)
