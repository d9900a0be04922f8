from typing import Dict, Any, List
import asyncio
import copy

from miniclawd.domain.exceptions import StorageKeyNotFound


class InMemoryStore:
    """Process-local key/value store satisfying the storage port"""

    def __init__(self, initial: Dict[str, Any] = None):
        self.data: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self.save_count = 0
        self._lock = asyncio.Lock()

    async def load(self, key: str) -> Any:
        """Load a value, raising StorageKeyNotFound if absent"""

        async with self._lock:
            if key not in self.data:
                raise StorageKeyNotFound(key)

            return copy.deepcopy(self.data[key])

    async def save(self, key: str, value: Any) -> None:
        """Store a copy of the value under the key"""

        async with self._lock:
            self.data[key] = copy.deepcopy(value)
            self.save_count += 1

    async def delete(self, key: str) -> bool:
        """Delete a key from the store"""

        async with self._lock:
            if key in self.data:
                del self.data[key]
                return True
            return False

    async def keys(self) -> List[str]:
        """List stored keys"""

        async with self._lock:
            return list(self.data.keys())
