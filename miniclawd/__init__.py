"""
miniclawd - A small reason/act/observe agent runtime.

Profiles trade context size for speed: LOW_POWER sees only the current run,
HIGH_POWER the whole retained conversation, CHAT is a single tool-less call.
"""

from miniclawd.domain.exceptions import (
    BackendError,
    BackendTimeoutError,
    MiniclawdError,
    StorageError,
    StorageKeyNotFound,
    ToolError,
)
from miniclawd.domain.context.memory.conversation_memory import ConversationMemory
from miniclawd.domain.context.memory.in_memory_store import InMemoryStore
from miniclawd.domain.models.agent_state import AgentStatus, FailureKind, RunResult
from miniclawd.domain.models.messages import Message, Role
from miniclawd.domain.models.profile import Profile, normalize_profile
from miniclawd.domain.orchestration.core.main_agent import Agent
from miniclawd.domain.parsing.response_parser import ResponseParser
from miniclawd.domain.streaming.events import ProgressEvent, ProgressEventType
from miniclawd.domain.tool.base_tool import BaseTool, FunctionTool
from miniclawd.domain.tool.tool_registry import ToolRegistry
from miniclawd.infrastructure.config import Settings, get_settings
from miniclawd.infrastructure.observability.logging import MetricsCollector, setup_logging
from miniclawd.infrastructure.persistence.json_file_store import JsonFileStore

__version__ = "0.1.0"

__all__ = [
    "Agent",
    "AgentStatus",
    "BackendError",
    "BackendTimeoutError",
    "BaseTool",
    "ConversationMemory",
    "FailureKind",
    "FunctionTool",
    "InMemoryStore",
    "JsonFileStore",
    "Message",
    "MetricsCollector",
    "MiniclawdError",
    "Profile",
    "ProgressEvent",
    "ProgressEventType",
    "ResponseParser",
    "Role",
    "RunResult",
    "Settings",
    "StorageError",
    "StorageKeyNotFound",
    "ToolError",
    "ToolRegistry",
    "get_settings",
    "normalize_profile",
    "setup_logging",
]
