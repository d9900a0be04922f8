from typing import Any, Dict, Optional
import asyncio
import inspect
import json
import time

import structlog
from pydantic import BaseModel

from miniclawd.domain.context.memory.conversation_memory import ConversationMemory
from miniclawd.domain.exceptions import ToolNotFoundError, ToolTimeoutError, ToolValidationError
from miniclawd.domain.models.actions import ToolAction
from miniclawd.domain.models.messages import Role
from miniclawd.domain.tool.tool_registry import ToolRegistry
from miniclawd.domain.tool.tool_validator import ToolParameterValidator
from miniclawd.infrastructure.observability.logging import MetricsCollector, agent_logger

logger = structlog.get_logger(__name__)


class ToolObservation(BaseModel):
    """Result of dispatching one tool action"""
    tool: str
    content: str
    success: bool
    error_kind: Optional[str] = None
    duration_ms: float = 0.0


def _render_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    try:
        return json.dumps(result, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(result)


class ToolExecutor:
    """Resolves tool actions, runs them and records action/observation pairs.

    Failures of any kind become observation text; nothing raised by a tool
    leaves invoke().
    """

    def __init__(
        self,
        registry: ToolRegistry,
        memory: ConversationMemory,
        validator: Optional[ToolParameterValidator] = None,
        metrics: Optional[MetricsCollector] = None,
        tool_timeout: Optional[float] = None,
        include_thought: bool = False,
    ):
        self.registry = registry
        self.memory = memory
        self.validator = validator or ToolParameterValidator()
        self.metrics = metrics
        self.tool_timeout = tool_timeout
        self.include_thought = include_thought

    async def invoke(self, action: ToolAction) -> ToolObservation:
        """Execute a tool action and append it and its observation to memory"""

        observation = await self._execute(action)

        # Action first, then observation
        await self.memory.add_message(Role.ASSISTANT, action.to_content(self.include_thought))
        await self.memory.add_message(Role.USER, observation.content)

        return observation

    async def _execute(self, action: ToolAction) -> ToolObservation:
        name = action.tool
        try:
            tool = self.registry.require(name)
        except ToolNotFoundError as e:
            logger.warning("Tool not found", tool=name, available=self.registry.names())
            self._count("tool_not_found", name)
            return ToolObservation(
                tool=name,
                content=f"Error: {e}",
                success=False,
                error_kind="not_found",
            )

        started = time.perf_counter()
        error_kind: Optional[str] = None

        try:
            args = self.validator.validate_tool_call(tool, action.args)
            result = await self._call(tool, args)
            content = f"Tool Output: {_render_result(result)}"
        except ToolValidationError as e:
            error_kind = "validation"
            content = f"Tool Execution Error: {e}"
        except ToolTimeoutError as e:
            error_kind = "timeout"
            content = f"Tool Execution Error: {e}"
        except Exception as e:
            error_kind = "execution"
            content = f"Tool Execution Error: {str(e) or type(e).__name__}"
            logger.warning("Tool raised", tool=name, error=str(e), exc_info=True)

        duration_ms = (time.perf_counter() - started) * 1000
        success = error_kind is None

        agent_logger.log_tool_execution(
            tool_name=name,
            input_data=action.args,
            output_data=content,
            duration_ms=duration_ms,
            success=success,
            error=error_kind,
        )

        if self.metrics is not None:
            self.metrics.record_latency(f"tool.{name}", duration_ms, tags={"tool": name})
            self.metrics.increment_counter("tool_calls", tags={"tool": name})
        if not success:
            self._count("tool_errors", name)

        return ToolObservation(
            tool=name,
            content=content,
            success=success,
            error_kind=error_kind,
            duration_ms=duration_ms,
        )

    async def _call(self, tool: Any, args: Dict[str, Any]) -> Any:
        if self.tool_timeout is None:
            return await self._run(tool, args)

        try:
            return await asyncio.wait_for(self._run(tool, args), timeout=self.tool_timeout)
        except asyncio.TimeoutError:
            raise ToolTimeoutError(
                f"Tool '{tool.name}' timed out after {self.tool_timeout:g}s"
            ) from None

    @staticmethod
    async def _run(tool: Any, args: Dict[str, Any]) -> Any:
        # Sync tools run in a worker thread
        if inspect.iscoroutinefunction(tool.execute):
            result = await tool.execute(args)
        else:
            result = await asyncio.to_thread(tool.execute, args)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _count(self, name: str, tool: str):
        if self.metrics is not None:
            self.metrics.increment_counter(name, tags={"tool": tool})
