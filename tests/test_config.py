"""Config loading, profile overlay and threshold validation."""

import pytest
from pydantic import ValidationError

from polywhale.config import get_settings, load_config
from polywhale.models import DetectorConfig


def test_profile_overlays_default(tmp_path):
    (tmp_path / "default.toml").write_text(
        '[monitor]\nmin_size = 10000\nalert_age_sec = 120\n\n[logging]\nlevel = "INFO"\n'
    )
    (tmp_path / "dev.toml").write_text("[monitor]\nmin_size = 500\n")
    raw = load_config("dev", tmp_path)
    assert raw["monitor"] == {"min_size": 500, "alert_age_sec": 120}
    settings = get_settings("dev", tmp_path)
    cfg = settings.detector_config()
    assert cfg.min_size == 500
    assert cfg.alert_age_sec == 120
    assert settings.logging_level == "INFO"


def test_missing_config_dir_gives_defaults(tmp_path):
    settings = get_settings(None, tmp_path)
    cfg = settings.detector_config()
    assert cfg.min_size == 10000
    assert cfg.tracked_sides == ["BUY"]
    assert settings.dedup_window_hours == 48


def test_telegram_credentials_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "abc")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "42")
    settings = get_settings(None, tmp_path)
    assert settings.telegram_bot_token == "abc"
    assert settings.telegram_chat_id == "42"


def test_detector_config_validation():
    with pytest.raises(ValidationError):
        DetectorConfig(min_price=0.9, max_price=0.1)
    with pytest.raises(ValidationError):
        DetectorConfig(tracked_sides=["HOLD"])
    with pytest.raises(ValidationError):
        DetectorConfig(min_size=0)
