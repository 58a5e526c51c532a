import json
import time
from typing import Any, Dict, List, Optional

from .base import StorageBackend


class DictionaryBackend(StorageBackend):
    """
    In-memory dictionary storage backend implementation.

    Values are stored as JSON text, like the Redis backend, so callers never
    share mutable objects with the store.
    """

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.expiry: Dict[str, float] = {}
        self.sorted_sets: Dict[str, Dict[str, float]] = {}

    def _expire_if_due(self, key: str) -> None:
        if key in self.expiry and time.time() > self.expiry[key]:
            self.data.pop(key, None)
            self.expiry.pop(key, None)

    async def set(self, key: str, value: Any, expiry: Optional[int] = None) -> None:
        self.data[key] = json.dumps(value)
        if expiry:
            self.expiry[key] = time.time() + expiry
        else:
            self.expiry.pop(key, None)

    async def get(self, key: str) -> Optional[Any]:
        self._expire_if_due(key)
        value = self.data.get(key)
        return json.loads(value) if value is not None else None

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)
        self.expiry.pop(key, None)
        self.sorted_sets.pop(key, None)

    async def zadd(self, key: str, mapping: Dict[str, float]) -> None:
        if key not in self.sorted_sets:
            self.sorted_sets[key] = {}
        self.sorted_sets[key].update(mapping)

    async def zrevrange(self, key: str, start: int, end: int) -> List[str]:
        if key not in self.sorted_sets:
            return []
        sorted_items = sorted(self.sorted_sets[key].items(), key=lambda x: x[1], reverse=True)
        stop = None if end == -1 else end + 1
        return [item[0] for item in sorted_items[start:stop]]

    async def zrem(self, key: str, *members: str) -> None:
        if key in self.sorted_sets:
            for member in members:
                self.sorted_sets[key].pop(member, None)

    async def ping(self) -> bool:
        return True
