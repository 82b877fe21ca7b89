"""Polymarket CLOB WebSocket client - connect, subscribe, receive, reconnect."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Awaitable, Callable

import structlog
import websockets

log = structlog.get_logger(__name__)

# How often the receive loop wakes up to check for stop / resubscribe requests.
_POLL_SEC = 1.0


def _parse_message(raw: str | bytes) -> Any | None:
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        log.debug("ws_non_json_frame", frame=str(raw)[:80])
        return None


async def run_ws_ingestion(
    ws_url: str,
    get_asset_ids: Callable[[], list[str]],
    on_message: Callable[[Any, int], Awaitable[None]],
    *,
    resubscribe: asyncio.Event | None = None,
    on_connect: Callable[[], None] | None = None,
    reconnect_base_delay_sec: float = 1.0,
    reconnect_max_delay_sec: float = 60.0,
    reconnect_max_retries: int = 0,
    idle_timeout_sec: float = 60.0,
    stop_event: asyncio.Event | None = None,
) -> None:
    """
    Connect to the CLOB market channel, subscribe to get_asset_ids(), and await on_message for each frame.
    on_message(payload, ingest_ts_ms). Runs until stop_event is set or retries are exhausted.
    Reconnect with exponential backoff; resubscribe on each reconnect. Setting resubscribe
    drops the connection and reconnects immediately with the current asset list.
    """
    stop = stop_event or asyncio.Event()
    resub = resubscribe or asyncio.Event()
    delay = reconnect_base_delay_sec
    retries = 0

    while not stop.is_set():
        asset_ids = get_asset_ids()
        if not asset_ids:
            # Nothing to watch yet; wait for the directory to hand us tokens.
            resub.clear()
            try:
                await asyncio.wait_for(resub.wait(), timeout=_POLL_SEC)
            except asyncio.TimeoutError:
                pass
            continue
        try:
            async with websockets.connect(
                ws_url,
                ping_interval=20,
                ping_timeout=20,
                close_timeout=5,
                max_size=None,
            ) as ws:
                resub.clear()
                delay = reconnect_base_delay_sec
                retries = 0
                log.info("ws_connected", url=ws_url, asset_count=len(asset_ids))

                sub = {"type": "market", "assets_ids": asset_ids}
                await ws.send(json.dumps(sub))
                log.info("ws_subscribed", assets=len(asset_ids))
                if on_connect is not None:
                    on_connect()

                idle = 0.0
                while not stop.is_set() and not resub.is_set():
                    try:
                        raw = await asyncio.wait_for(ws.recv(), timeout=_POLL_SEC)
                    except asyncio.TimeoutError:
                        idle += _POLL_SEC
                        if idle >= idle_timeout_sec:
                            raise TimeoutError(f"no message for {idle_timeout_sec:.0f}s")
                        continue
                    idle = 0.0
                    ingest_ts = int(time.time() * 1000)
                    msg = _parse_message(raw)
                    if msg is not None:
                        await on_message(msg, ingest_ts)
                if resub.is_set() and not stop.is_set():
                    log.info("ws_resubscribing", assets=len(get_asset_ids()))
        except asyncio.CancelledError:
            log.info("ws_cancelled")
            raise
        except Exception as e:
            log.warning("ws_error", error=str(e), delay=delay)
            if reconnect_max_retries and retries >= reconnect_max_retries:
                log.error("ws_max_retries_reached")
                break
            retries += 1
            try:
                await asyncio.wait_for(stop.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
            delay = min(delay * 2, reconnect_max_delay_sec)

    log.info("ws_ingestion_stopped")
