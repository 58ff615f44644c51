from __future__ import annotations

import math
from datetime import datetime


def _parts(raw: str) -> tuple[int, int, int]:
    # GTFS time can be HH:MM:SS with HH possibly > 24; seconds are optional here.
    pieces = raw.strip().split(":")
    if len(pieces) not in (2, 3):
        raise ValueError(f"Invalid GTFS time: {raw!r}")
    hh = int(pieces[0])
    mm = int(pieces[1])
    ss = int(pieces[2]) if len(pieces) == 3 else 0
    return hh, mm, ss


def time_to_minutes(raw: str) -> int:
    """Minutes since midnight of the service day; seconds are ignored."""

    hh, mm, _ = _parts(raw)
    return hh * 60 + mm


def is_time_after(time_a: str, time_b: str) -> bool:
    return time_to_minutes(time_a) > time_to_minutes(time_b)


def format_gtfs_time(moment: datetime) -> str:
    return f"{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"


def add_minutes_to_time(raw: str, minutes: int) -> str:
    """Shift a HH:MM:SS time by whole minutes.

    The hour wraps modulo 24 and the seconds are carried over unchanged.
    A zero shift returns the input as-is (including hours >= 24).
    """

    if not minutes:
        return raw

    hh, mm, ss = _parts(raw)
    total = hh * 60 + mm + int(minutes)
    return f"{(total // 60) % 24:02d}:{total % 60:02d}:{ss:02d}"


def delay_seconds_to_minutes(delay_s: int | float) -> int:
    # Half-up rounding: 90s -> 2, -90s -> -1.
    return int(math.floor(float(delay_s) / 60.0 + 0.5))
