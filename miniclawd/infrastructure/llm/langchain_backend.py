"""
infrastructure.llm.langchain_backend - Chat backend over a LangChain chat model.

Any langchain_core BaseChatModel (Ollama, OpenAI, Groq, fakes in tests) can
drive the agent through this adapter.
"""

from __future__ import annotations

import inspect
from typing import Any, List, Optional

import structlog
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from miniclawd.domain.exceptions import BackendError
from miniclawd.domain.models.messages import Message, Role
from miniclawd.domain.ports import TokenObserver

logger = structlog.get_logger(__name__)

_MESSAGE_TYPES = {
    Role.SYSTEM: SystemMessage,
    Role.USER: HumanMessage,
    Role.ASSISTANT: AIMessage,
}


def to_langchain_messages(messages: List[Message]) -> List[BaseMessage]:
    """Convert role-tagged messages to LangChain message objects."""
    return [_MESSAGE_TYPES[message.role](content=message.content) for message in messages]


def content_text(content: Any) -> str:
    """Flatten LangChain message content (str or content blocks) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return "" if content is None else str(content)


class LangChainChatBackend:
    """ChatBackend implementation backed by a LangChain chat model."""

    def __init__(self, model: BaseChatModel, streaming: bool = False):
        self.model = model
        self.streaming = streaming

    async def chat(
        self,
        messages: List[Message],
        on_token: Optional[TokenObserver] = None,
    ) -> str:
        lc_messages = to_langchain_messages(messages)

        try:
            if self.streaming and on_token is not None:
                return await self._stream(lc_messages, on_token)

            response = await self.model.ainvoke(lc_messages)
            return content_text(response.content)
        except BackendError:
            raise
        except Exception as e:
            logger.error("Chat model call failed", error=str(e), model=type(self.model).__name__)
            raise BackendError(f"{type(e).__name__}: {e}") from e

    async def _stream(self, lc_messages: List[BaseMessage], on_token: TokenObserver) -> str:
        parts: List[str] = []

        async for chunk in self.model.astream(lc_messages):
            text = content_text(chunk.content)
            if not text:
                continue
            parts.append(text)
            result = on_token(text)
            if inspect.isawaitable(result):
                await result

        return "".join(parts)
