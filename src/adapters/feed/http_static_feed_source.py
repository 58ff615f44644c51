from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import httpx

from src.app.ports.output import IStaticFeedSource
from src.domain.exceptions import FeedNetworkError

logger = logging.getLogger(__name__)

VBN_GTFS_STATIC_URL = (
    "https://www.connect-info.net/opendata/gtfs/connect-nds-toplevel/wftdkvbsii"
)


@dataclass(slots=True)
class HttpStaticFeedSource(IStaticFeedSource):
    """Downloads the zipped GTFS static feed over HTTP.

    Env vars:
      - GTFS_STATIC_URL: archive URL (default: VBN connect-nds toplevel feed)
      - GTFS_STATIC_TIMEOUT_S: request timeout (default 120)
    """

    url: str | None = None
    timeout_s: float = 120.0

    def __post_init__(self) -> None:
        if self.url is None:
            self.url = os.getenv("GTFS_STATIC_URL") or VBN_GTFS_STATIC_URL
        if os.getenv("GTFS_STATIC_TIMEOUT_S"):
            self.timeout_s = float(os.environ["GTFS_STATIC_TIMEOUT_S"])

    async def fetch_archive(self) -> bytes:
        logger.info("Downloading GTFS static feed from %s", self.url)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, follow_redirects=True
            ) as client:
                resp = await client.get(str(self.url))
                resp.raise_for_status()
                content = resp.content
        except httpx.HTTPError as exc:
            raise FeedNetworkError(f"GTFS static download failed: {exc}") from exc

        logger.info("Downloaded %d bytes of GTFS static feed", len(content))
        return content
