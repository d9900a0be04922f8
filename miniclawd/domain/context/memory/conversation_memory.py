from typing import Dict, List, Any, Optional, Tuple, Union
import asyncio

import structlog
from pydantic import ValidationError

from miniclawd.domain.exceptions import StorageError, StorageKeyNotFound
from miniclawd.domain.models.messages import Message, Role, dump_messages, serialized_size
from miniclawd.domain.ports import StoragePort
from miniclawd.infrastructure.observability.logging import agent_logger

logger = structlog.get_logger(__name__)

DEFAULT_MIN_RETAINED = 10


class ConversationMemory:
    """Ordered conversation log with count and size based eviction.

    After every mutation the log holds at most ``max_messages`` entries and,
    unless only ``min_retained`` entries are left, at most ``max_bytes`` of
    serialized JSON. Eviction always drops the oldest entries first.
    """

    def __init__(
        self,
        max_messages: int = 100,
        max_bytes: int = 200_000,
        storage: Optional[StoragePort] = None,
        storage_key: str = "messages",
        min_retained: int = DEFAULT_MIN_RETAINED,
    ):
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        if max_bytes < 1:
            raise ValueError("max_bytes must be at least 1")

        self.max_messages = max_messages
        self.max_bytes = max_bytes
        self.min_retained = max(0, min_retained)
        self.storage = storage
        self.storage_key = storage_key

        self._messages: List[Message] = []
        self._evicted = 0
        self._initialized = False
        self._lock = asyncio.Lock()

    @property
    def total_appended(self) -> int:
        """Monotonic count of messages ever held, including evicted ones"""
        return self._evicted + len(self._messages)

    @property
    def initialized(self) -> bool:
        return self._initialized

    def __len__(self) -> int:
        return len(self._messages)

    async def init(self) -> None:
        """Hydrate from storage; safe to call repeatedly"""

        async with self._lock:
            if self._initialized:
                return

            if self.storage is None:
                self._initialized = True
                return

            try:
                raw = await self.storage.load(self.storage_key)
            except StorageKeyNotFound:
                logger.info("No stored conversation, starting empty", key=self.storage_key)
                await self._persist([])
                self._messages = []
                self._initialized = True
                return
            except StorageError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to load conversation '{self.storage_key}': {e}") from e

            kept, evicted = self._evict(self._hydrate(raw))
            if evicted:
                await self._persist(kept)

            self._commit(kept, evicted)

            self._initialized = True
            agent_logger.log_memory_update(
                "hydrate",
                {"messages": len(self._messages), "evicted": evicted}
            )

    async def add_message(self, role: Union[Role, str], content: str) -> Message:
        """Append a message, evict as needed and persist"""

        message = Message(role=Role(role), content=content)

        async with self._lock:
            # Stored copy is written before the in-process log changes
            kept, evicted = self._evict(self._messages + [message])
            await self._persist(kept)
            self._commit(kept, evicted)

        agent_logger.log_memory_update(
            "append",
            {"role": message.role.value, "messages": len(self._messages), "evicted": evicted}
        )
        return message

    def get_messages(self) -> Tuple[Message, ...]:
        """Snapshot of the retained conversation in order"""
        return tuple(self._messages)

    def messages_since(self, cursor: int) -> Tuple[Message, ...]:
        """Retained messages whose sequence number is at least ``cursor``.

        ``cursor`` is a value previously read from ``total_appended``.
        """
        offset = max(0, cursor - self._evicted)
        return tuple(self._messages[offset:])

    async def clear(self) -> None:
        """Drop every message and persist the empty log"""

        async with self._lock:
            await self._persist([])
            self._commit([], len(self._messages))

        agent_logger.log_memory_update("clear")

    def get_stats(self) -> Dict[str, Any]:
        """Current usage against the configured limits"""
        return {
            "message_count": len(self._messages),
            "size_bytes": serialized_size(self._messages),
            "max_messages": self.max_messages,
            "max_size": self.max_bytes,
        }

    def _evict(self, messages: List[Message]) -> Tuple[List[Message], int]:
        """Apply the count ceiling, then the size ceiling; return (kept, evicted)"""

        kept = list(messages)
        evicted = 0

        # Count ceiling first, size ceiling second
        overflow = len(kept) - self.max_messages
        if overflow > 0:
            kept = kept[overflow:]
            evicted += overflow

        size = serialized_size(kept)
        while size > self.max_bytes and len(kept) > self.min_retained:
            kept.pop(0)
            evicted += 1
            size = serialized_size(kept)

        if evicted:
            logger.debug(
                "Evicted messages",
                evicted=evicted,
                remaining=len(kept),
                size_bytes=size,
            )

        return kept, evicted

    def _commit(self, messages: List[Message], evicted: int) -> None:
        self._messages = messages
        self._evicted += evicted


    def _hydrate(self, raw: Any) -> List[Message]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise StorageError(
                f"Stored conversation '{self.storage_key}' is not a list: {type(raw).__name__}"
            )

        try:
            return [Message.model_validate(item) for item in raw]
        except ValidationError as e:
            raise StorageError(f"Stored conversation '{self.storage_key}' is malformed: {e}") from e

    async def _persist(self, messages: List[Message]) -> None:
        if self.storage is None:
            return

        try:
            await self.storage.save(self.storage_key, dump_messages(messages))
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save conversation '{self.storage_key}': {e}") from e
