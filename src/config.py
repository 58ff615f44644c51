from __future__ import annotations

import os
from dataclasses import dataclass

HAFERKAMP_STOP_ID = "000009013912"
BREMEN_HBF_STOP_ID = "000009013925"


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    return int(raw) if raw else default


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


@dataclass(frozen=True, slots=True)
class BoardSettings:
    """Board-level settings; adapters read their own env vars."""

    origin_stop_id: str = HAFERKAMP_STOP_ID
    destination_stop_id: str = BREMEN_HBF_STOP_ID
    origin_label: str = "Bremen Haferkamp"
    default_limit: int = 3
    scan_limit: int = 10
    line_delay_fallback: bool = True
    feed_max_age_s: float = 3600.0
    refresh_interval_s: float = 3600.0
    refresh_on_startup: bool = True
    source_label: str = "VBN GTFS + Realtime API"
    timezone: str = "Europe/Berlin"

    @staticmethod
    def from_env() -> "BoardSettings":
        return BoardSettings(
            origin_stop_id=os.getenv("ORIGIN_STOP_ID") or HAFERKAMP_STOP_ID,
            destination_stop_id=os.getenv("DESTINATION_STOP_ID") or BREMEN_HBF_STOP_ID,
            origin_label=os.getenv("ORIGIN_LABEL") or "Bremen Haferkamp",
            default_limit=env_int("DEFAULT_LIMIT", 3),
            scan_limit=env_int("SCAN_LIMIT", 10),
            line_delay_fallback=env_bool("LINE_DELAY_FALLBACK", True),
            feed_max_age_s=env_float("FEED_MAX_AGE_S", 3600.0),
            refresh_interval_s=env_float("REFRESH_INTERVAL_S", 3600.0),
            refresh_on_startup=env_bool("REFRESH_ON_STARTUP", True),
            source_label=os.getenv("SOURCE_LABEL") or "VBN GTFS + Realtime API",
            timezone=os.getenv("BOARD_TIMEZONE") or "Europe/Berlin",
        )
