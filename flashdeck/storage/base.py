from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class StorageBackend(ABC):
    """
    Async key-value store for JSON-serialisable documents.

    Project snapshots live under plain keys; the project index is a sorted set
    scored by last update time.
    """

    @abstractmethod
    async def set(self, key: str, value: Any, expiry: Optional[int] = None) -> None:
        """Store ``value`` under ``key``, expiring after ``expiry`` seconds if given."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored document, or None if missing or expired."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def zadd(self, key: str, mapping: Dict[str, float]) -> None:
        """Insert members or update their scores."""

    @abstractmethod
    async def zrevrange(self, key: str, start: int, end: int) -> List[str]:
        """Members from highest to lowest score; ``end`` is inclusive and -1 means the last."""

    @abstractmethod
    async def zrem(self, key: str, *members: str) -> None:
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None
