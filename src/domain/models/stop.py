from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Stop:
    id: str
    name: str
    lat: float = 0.0
    lon: float = 0.0
