from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import FeedSnapshot


class ISnapshotCache(ABC):
    """Persistence port for the last parsed static snapshot."""

    @abstractmethod
    def age_s(self) -> float | None:
        """Seconds since the cached snapshot was written, or None if absent."""

    @abstractmethod
    def load(self) -> FeedSnapshot:
        raise NotImplementedError

    @abstractmethod
    def save(self, snapshot: FeedSnapshot) -> None:
        raise NotImplementedError
