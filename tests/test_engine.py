"""WhaleEngine wiring: feed events -> book -> detector."""

from polywhale.detector import LevelState
from polywhale.engine import WhaleEngine
from polywhale.models import DetectorConfig, OrderBookDelta, OrderBookSnapshot, PriceLevel


def _delta(asset_id, price, size, side="BUY"):
    return OrderBookDelta(asset_id=asset_id, side=side, price=price, size=size)


def test_snapshot_then_jump_is_tracked(config, instruments, clock):
    eng = WhaleEngine(config, instruments, clock=clock)
    snap = OrderBookSnapshot(
        asset_id="tok-a",
        bids=[PriceLevel(price=0.5, size=1000)],
        asks=[PriceLevel(price=0.55, size=300)],
    )
    assert eng.handle_event(snap)
    assert eng.detector.get("tok-a", 0.5, "BUY").state == LevelState.BASELINE
    eng.handle_event(_delta("tok-a", 0.5, 12000))
    assert eng.detector.get("tok-a", 0.5, "BUY").state == LevelState.TRACKING
    assert eng.store.get("tok-a").size_at("BUY", 0.5) == 12000
    clock.advance(121)
    alerts = eng.check_ages()
    assert [a.size for a in alerts] == [11000]


def test_sell_side_not_tracked_by_default(config, instruments, clock):
    eng = WhaleEngine(config, instruments, clock=clock)
    eng.handle_event(_delta("tok-a", 0.5, 1000, side="SELL"))
    eng.handle_event(_delta("tok-a", 0.5, 50000, side="SELL"))
    assert len(eng.detector) == 0
    assert eng.store.get("tok-a").size_at("SELL", 0.5) == 50000


def test_sell_side_tracked_when_configured(instruments, clock):
    eng = WhaleEngine(DetectorConfig(tracked_sides=["BUY", "SELL"]), instruments, clock=clock)
    eng.handle_event(_delta("tok-a", 0.5, 1000, side="SELL"))
    eng.handle_event(_delta("tok-a", 0.5, 50000, side="SELL"))
    assert eng.detector.get("tok-a", 0.5, "SELL").state == LevelState.TRACKING


def test_inactive_token_ignored(config, instruments, clock):
    eng = WhaleEngine(config, instruments, clock=clock)
    assert not eng.handle_event(_delta("other", 0.5, 1000))
    assert eng.events_ignored == 1
    assert len(eng.store) == 0


def test_zero_size_removes_order(config, instruments, clock):
    eng = WhaleEngine(config, instruments, clock=clock)
    eng.handle_event(_delta("tok-a", 0.5, 1000))
    eng.handle_event(_delta("tok-a", 0.5, 12000))
    eng.handle_event(_delta("tok-a", 0.5, 0))
    assert eng.detector.get("tok-a", 0.5, "BUY").state == LevelState.BASELINE
    assert eng.store.get("tok-a").size_at("BUY", 0.5) == 0


def test_snapshot_redelivery_keeps_tracking(config, instruments, clock):
    eng = WhaleEngine(config, instruments, clock=clock)
    eng.handle_event(_delta("tok-a", 0.5, 1000))
    eng.handle_event(_delta("tok-a", 0.5, 12000))
    clock.advance(60)
    # reconnect replays the book with the same size
    eng.handle_event(OrderBookSnapshot(asset_id="tok-a", bids=[PriceLevel(price=0.5, size=12000)]))
    clock.advance(61)
    assert len(eng.check_ages()) == 1


def test_update_instruments_cleans_up(config, instruments, clock):
    eng = WhaleEngine(config, instruments, clock=clock)
    eng.handle_event(_delta("tok-a", 0.5, 1000))
    eng.handle_event(_delta("tok-b", 0.5, 1000))
    gone = eng.update_instruments({"tok-b": instruments["tok-b"]})
    assert gone == ["tok-a"]
    assert eng.store.get("tok-a") is None
    assert eng.detector.get("tok-a", 0.5, "BUY") is None
    assert not eng.handle_event(_delta("tok-a", 0.5, 1000))


def test_sweep_stale_uses_config(config, instruments, clock):
    eng = WhaleEngine(config, instruments, clock=clock)
    eng.handle_event(_delta("tok-a", 0.5, 1000))
    clock.advance(301)
    assert eng.sweep_stale() == 1
    stats = eng.stats()
    assert stats["book_levels"] == 0
    assert stats["events_applied"] == 1


def test_level_outside_depth_cap_never_alerts(instruments, clock):
    eng = WhaleEngine(DetectorConfig(depth_cap=2), instruments, clock=clock)
    eng.handle_event(_delta("tok-a", 0.5, 100))
    eng.handle_event(_delta("tok-a", 0.4, 100))
    eng.handle_event(_delta("tok-a", 0.3, 1000))
    eng.handle_event(_delta("tok-a", 0.3, 12000))
    assert eng.store.get("tok-a").sorted_bids() == [(0.5, 100), (0.4, 100)]
    assert eng.detector.get("tok-a", 0.3, "BUY") is None
    clock.advance(121)
    assert eng.check_ages() == []
