"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from polywhale.models.config import DetectorConfig

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"

DEFAULT_LEAGUE_PREFIXES = [
    # American sports
    "nba-", "nhl-", "nfl-", "cbb-", "cfb-", "mls-",
    # Soccer - Europe
    "epl-", "elc-", "lal-", "es2-", "bun-", "bl2-", "sea-", "itsb-", "ere-",
    "por-", "tur-", "rus-", "den-", "nor-", "scop-",
    # Soccer - Americas
    "arg-", "bra-", "mex-", "lib-", "cde-",
    # Soccer - Asia
    "kor-", "jap-", "ja2-",
    # Esports
    "val-", "lol-", "csgo-", "cs2-", "dota-", "dota2-",
]


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir(config_dir: Path | None = None) -> Path:
    if config_dir is not None:
        return config_dir
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml and optional profile overlay."""
    config_dir = _find_config_dir(config_dir)
    default_path = config_dir / "default.toml"
    if not default_path.exists():
        return {}
    base = _load_toml(default_path)
    if profile:
        profile_path = config_dir / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return base


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        monitor: dict[str, Any] | None = None,
        directory: dict[str, Any] | None = None,
        ingestion: dict[str, Any] | None = None,
        polymarket: dict[str, Any] | None = None,
        alerts: dict[str, Any] | None = None,
        account: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.monitor = monitor or {}
        self.directory = directory or {}
        self.ingestion = ingestion or {}
        self.polymarket = polymarket or {}
        self.alerts = alerts or {}
        self.account = account or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            monitor=raw.get("monitor"),
            directory=raw.get("directory"),
            ingestion=raw.get("ingestion"),
            polymarket=raw.get("polymarket"),
            alerts=raw.get("alerts"),
            account=raw.get("account"),
            logging=raw.get("logging"),
        )

    # Detector thresholds
    @property
    def min_size(self) -> float:
        return float(self.monitor.get("min_size", 10000))

    @property
    def min_price(self) -> float:
        return float(self.monitor.get("min_price", 0.05))

    @property
    def max_price(self) -> float:
        return float(self.monitor.get("max_price", 0.95))

    @property
    def alert_age_sec(self) -> float:
        return float(self.monitor.get("alert_age_sec", 120))

    @property
    def delta_tolerance(self) -> float:
        return float(self.monitor.get("delta_tolerance", 0.10))

    @property
    def min_impact_percent(self) -> float:
        return float(self.monitor.get("min_impact_percent", 0.60))

    @property
    def depth_cap(self) -> int:
        return int(self.monitor.get("depth_cap", 50))

    @property
    def stale_after_sec(self) -> float:
        return float(self.monitor.get("stale_after_sec", 300))

    @property
    def tracked_sides(self) -> list[str]:
        return [str(s).upper() for s in (self.monitor.get("tracked_sides") or ["BUY"])]

    # Monitor cadence
    @property
    def stale_sweep_interval_sec(self) -> float:
        return float(self.monitor.get("stale_sweep_interval_sec", 60))

    @property
    def age_check_interval_sec(self) -> float:
        return float(self.monitor.get("age_check_interval_sec", 1.0))

    @property
    def status_interval_sec(self) -> float:
        return float(self.monitor.get("status_interval_sec", 30))

    @property
    def event_queue_size(self) -> int:
        return int(self.monitor.get("queue_size", 10000))

    # Instrument directory
    @property
    def directory_refresh_interval_sec(self) -> float:
        return float(self.directory.get("refresh_interval_sec", 300))

    @property
    def directory_limit(self) -> int:
        return int(self.directory.get("limit", 500))

    @property
    def league_prefixes(self) -> list[str]:
        return list(self.directory.get("league_prefixes") or DEFAULT_LEAGUE_PREFIXES)

    # Feed
    @property
    def reconnect_base_delay_sec(self) -> float:
        return float(self.ingestion.get("reconnect_base_delay_sec", 1.0))

    @property
    def reconnect_max_delay_sec(self) -> float:
        return float(self.ingestion.get("reconnect_max_delay_sec", 60.0))

    @property
    def reconnect_max_retries(self) -> int:
        return int(self.ingestion.get("reconnect_max_retries", 0))

    @property
    def hydration_batch_size(self) -> int:
        return int(self.ingestion.get("hydration_batch_size", 20))

    @property
    def hydration_rate_per_sec(self) -> float:
        return float(self.ingestion.get("hydration_rate_per_sec", 20.0))

    @property
    def gamma_api_base(self) -> str:
        return self.polymarket.get("gamma_api_base", "https://gamma-api.polymarket.com")

    @property
    def clob_api_base(self) -> str:
        return self.polymarket.get("clob_api_base", "https://clob.polymarket.com")

    @property
    def clob_ws_url(self) -> str:
        return self.polymarket.get(
            "clob_ws_url", "wss://ws-subscriptions-clob.polymarket.com/ws/market"
        )

    # Alerts
    @property
    def alerts_db_path(self) -> str:
        return self.alerts.get("db_path", "data/alerts.duckdb")

    @property
    def dedup_window_hours(self) -> float:
        return float(self.alerts.get("dedup_window_hours", 48))

    @property
    def alert_queue_size(self) -> int:
        return int(self.alerts.get("queue_size", 1000))

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.alerts.get("telegram_enabled", True))

    @property
    def telegram_bot_token(self) -> str | None:
        return os.environ.get("TELEGRAM_BOT_TOKEN", "").strip() or None

    @property
    def telegram_chat_id(self) -> str | None:
        return os.environ.get("TELEGRAM_CHAT_ID", "").strip() or None

    @property
    def data_api_base(self) -> str:
        return self.polymarket.get("data_api_base", "https://data-api.polymarket.com")

    # Account tracker
    @property
    def account_db_path(self) -> str:
        return self.account.get("db_path", "data/accounts.duckdb")

    @property
    def account_poll_interval_sec(self) -> float:
        return float(self.account.get("poll_interval_sec", 1.0))

    @property
    def account_activity_limit(self) -> int:
        return int(self.account.get("activity_limit", 10))

    @property
    def account_similar_price_pct(self) -> float:
        return float(self.account.get("similar_price_pct", 0.05))

    @property
    def account_similar_window_sec(self) -> float:
        return float(self.account.get("similar_window_sec", 300))

    @property
    def account_retention_hours(self) -> float:
        return float(self.account.get("retention_hours", 48))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)

    def detector_config(self) -> DetectorConfig:
        """Build the validated DetectorConfig used by the engine."""
        return DetectorConfig(
            min_size=self.min_size,
            min_price=self.min_price,
            max_price=self.max_price,
            alert_age_sec=self.alert_age_sec,
            delta_tolerance=self.delta_tolerance,
            min_impact_percent=self.min_impact_percent,
            depth_cap=self.depth_cap,
            stale_after_sec=self.stale_after_sec,
            tracked_sides=self.tracked_sides,
        )


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
