"""AgingScheduler and periodic task runner."""

import asyncio

from polywhale.detector import AgingScheduler, DeltaDetector, run_periodic


def test_tick_hands_alerts_to_callback(config, instruments, clock):
    det = DeltaDetector(config, instruments, clock=clock)
    received = []
    aging = AgingScheduler(det, received.append, clock=clock)
    det.observe("tok-a", 0.5, "BUY", 1000)
    det.observe("tok-a", 0.5, "BUY", 12000)
    assert aging.tick() == []
    clock.advance(120)
    alerts = aging.tick()
    assert len(alerts) == 1
    assert received == alerts
    clock.advance(10)
    assert aging.tick() == []


def test_run_periodic_survives_errors_and_stops():
    calls = []

    async def scenario():
        stop = asyncio.Event()

        def fn():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            if len(calls) >= 3:
                stop.set()

        await asyncio.wait_for(run_periodic("t", 0.01, fn, stop, run_immediately=True), timeout=5)

    asyncio.run(scenario())
    assert len(calls) == 3


def test_run_periodic_awaits_coroutines():
    calls = []

    async def scenario():
        stop = asyncio.Event()

        async def fn():
            calls.append(1)
            stop.set()

        await asyncio.wait_for(run_periodic("t", 0.01, fn, stop), timeout=5)

    asyncio.run(scenario())
    assert calls == [1]
