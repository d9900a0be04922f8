"""Shared fixtures: quiet logging, test settings, sample tools and stores."""

import asyncio
from typing import Any, Dict

import pytest

from miniclawd.domain.context.memory.conversation_memory import ConversationMemory
from miniclawd.domain.context.memory.in_memory_store import InMemoryStore
from miniclawd.domain.tool.base_tool import BaseTool
from miniclawd.infrastructure.config import Settings
from miniclawd.infrastructure.observability.logging import setup_logging


@pytest.fixture(autouse=True, scope="session")
def _quiet_logging():
    setup_logging(log_level="WARNING")


class EchoTool(BaseTool):
    name = "echo"
    description = "Echo back the given text"
    argument_schema = {
        "type": "object",
        "properties": {"text": {"type": "string"}},
        "required": ["text"],
    }

    def __init__(self):
        self.calls = []

    async def execute(self, args: Dict[str, Any]) -> str:
        self.calls.append(args)
        return f"echo: {args['text']}"


class ExplodingTool(BaseTool):
    name = "explode"
    description = "Always fails"

    async def execute(self, args: Dict[str, Any]) -> str:
        raise RuntimeError("boom")


class SlowTool(BaseTool):
    name = "slow"
    description = "Sleeps longer than any sane timeout"

    async def execute(self, args: Dict[str, Any]) -> str:
        await asyncio.sleep(1)
        return "too late"


class BrokenStore:
    """Storage port whose operations fail with the configured errors"""

    def __init__(self, load_error: Exception = None, save_error: Exception = None):
        self.load_error = load_error
        self.save_error = save_error
        self.loads = 0

    async def load(self, key: str) -> Any:
        self.loads += 1
        if self.load_error is not None:
            raise self.load_error
        return []

    async def save(self, key: str, value: Any) -> None:
        if self.save_error is not None:
            raise self.save_error


@pytest.fixture
def settings():
    return Settings(_env_file=None, max_turns=5, backend_timeout_seconds=2.0)


@pytest.fixture
def echo_tool():
    return EchoTool()


@pytest.fixture
def tools(echo_tool, exploding_tool):
    return [echo_tool, exploding_tool]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def memory(store):
    return ConversationMemory(max_messages=20, max_bytes=50_000, storage=store)


@pytest.fixture
def exploding_tool():
    return ExplodingTool()


@pytest.fixture
def slow_tool():
    return SlowTool()


@pytest.fixture
def broken_store():
    """Factory for stores that fail on load or save"""
    return BrokenStore
