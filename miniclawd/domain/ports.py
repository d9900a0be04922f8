"""
domain.ports - Interfaces for the collaborators the agent core depends on.

The core needs a text-generation backend, tools and optional key/value
storage for conversation history. These are typing.Protocol classes, so any
object with matching methods satisfies a port without inheriting from it.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable

from miniclawd.domain.models.messages import Message

TokenObserver = Callable[[str], Union[None, Awaitable[None]]]


@runtime_checkable
class ChatBackend(Protocol):
    """Generate text from an ordered list of role-tagged messages.

    Failures must raise; an empty string is a valid (empty) reply, never an
    error signal.
    """

    async def chat(
        self,
        messages: List[Message],
        on_token: Optional[TokenObserver] = None,
    ) -> str: ...


@runtime_checkable
class ToolPort(Protocol):
    """A named capability the agent can invoke with structured arguments."""

    name: str
    description: str
    argument_schema: Any

    def execute(self, args: Dict[str, Any]) -> Union[str, Awaitable[str]]: ...


@runtime_checkable
class StoragePort(Protocol):
    """Named value persistence used by conversation memory.

    load() raises StorageKeyNotFound for a missing key and StorageError for
    anything else; save() raises StorageError on failure.
    """

    async def load(self, key: str) -> Any: ...

    async def save(self, key: str, value: Any) -> None: ...
