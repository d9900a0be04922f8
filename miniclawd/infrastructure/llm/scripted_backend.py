from typing import Any, Iterable, List, Optional, Union
import asyncio
import inspect

from miniclawd.domain.models.messages import Message
from miniclawd.domain.ports import TokenObserver


class ScriptedBackend:
    """Backend that replays canned replies in order.

    Each scripted entry is either the reply text or an exception instance to
    raise. Once the script is exhausted the default reply is returned. Every
    message list received is recorded in ``calls``.
    """

    def __init__(
        self,
        responses: Optional[Iterable[Union[str, BaseException]]] = None,
        default: str = '{"answer": "No more scripted responses."}',
        delay: float = 0.0,
        chunk_size: int = 8,
    ):
        self.responses: List[Union[str, BaseException]] = list(responses or [])
        self.default = default
        self.delay = delay
        self.chunk_size = max(1, chunk_size)
        self.calls: List[List[Message]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def chat(
        self,
        messages: List[Message],
        on_token: Optional[TokenObserver] = None,
    ) -> str:
        index = len(self.calls)
        self.calls.append(list(messages))

        if self.delay:
            await asyncio.sleep(self.delay)

        reply: Any = self.responses[index] if index < len(self.responses) else self.default
        if isinstance(reply, BaseException):
            raise reply

        if on_token is not None:
            for start in range(0, len(reply), self.chunk_size):
                result = on_token(reply[start:start + self.chunk_size])
                if inspect.isawaitable(result):
                    await result

        return reply
