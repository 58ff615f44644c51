from __future__ import annotations

from abc import ABC, abstractmethod


class IStaticFeedSource(ABC):
    """Port for obtaining the zipped GTFS static archive."""

    @abstractmethod
    async def fetch_archive(self) -> bytes:
        raise NotImplementedError
