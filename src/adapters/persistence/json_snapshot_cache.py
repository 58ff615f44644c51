from __future__ import annotations

import json
import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

from src.app.ports.output import ISnapshotCache
from src.domain.exceptions import FeedParseError
from src.domain.models import FeedSnapshot

from .snapshot_codec import snapshot_from_document, snapshot_to_document

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JsonFileSnapshotCache(ISnapshotCache):
    """Keeps the parsed snapshot in a flat JSON file for fast restarts.

    Env vars:
      - SNAPSHOT_CACHE_PATH: file path (default: data/gtfs_cache.json)
    """

    path: str | Path | None = None

    def _path(self) -> Path:
        value = self.path or os.getenv("SNAPSHOT_CACHE_PATH") or "data/gtfs_cache.json"
        return Path(value)

    def age_s(self) -> float | None:
        try:
            mtime = self._path().stat().st_mtime
        except FileNotFoundError:
            return None
        return max(0.0, time.time() - mtime)

    def load(self) -> FeedSnapshot:
        path = self._path()
        try:
            with path.open("r", encoding="utf-8") as fp:
                doc = json.load(fp)
        except json.JSONDecodeError as exc:
            raise FeedParseError(f"Corrupt snapshot cache {path}: {exc}") from exc
        return snapshot_from_document(doc)

    def save(self, snapshot: FeedSnapshot) -> None:
        path = self._path()
        path.parent.mkdir(parents=True, exist_ok=True)

        # Write then rename so readers never see a half-written file.
        fd, tmp_name = tempfile.mkstemp(
            prefix=path.name, suffix=".tmp", dir=str(path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                json.dump(snapshot_to_document(snapshot), fp, separators=(",", ":"))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info("Snapshot cached to %s", path)
