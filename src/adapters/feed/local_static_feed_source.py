from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path

from src.app.ports.output import IStaticFeedSource
from src.domain.exceptions import FeedNetworkError


@dataclass(slots=True)
class LocalStaticFeedSource(IStaticFeedSource):
    """Reads a GTFS static zip from disk (offline development, fixtures).

    Env vars:
      - GTFS_ZIP_PATH: path to the .zip archive
    """

    path: str | Path | None = None

    def _path(self) -> Path:
        value = self.path or os.getenv("GTFS_ZIP_PATH")
        if not value:
            raise FeedNetworkError("Missing GTFS_ZIP_PATH")
        return Path(value)

    async def fetch_archive(self) -> bytes:
        path = self._path()
        if not path.is_file():
            raise FeedNetworkError(f"GTFS archive not found: {path}")
        return await asyncio.to_thread(path.read_bytes)
