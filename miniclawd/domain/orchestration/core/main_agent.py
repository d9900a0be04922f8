from typing import Any, Callable, Dict, Iterable, List, Optional, Union
import asyncio
import time
import uuid

import structlog

from miniclawd.domain.context.memory.conversation_memory import ConversationMemory
from miniclawd.domain.exceptions import BackendError, BackendTimeoutError
from miniclawd.domain.models.actions import AnswerAction, InvalidAction, ToolAction
from miniclawd.domain.models.agent_state import AgentState, AgentStatus, FailureKind, RunResult
from miniclawd.domain.models.messages import Message, Role
from miniclawd.domain.models.profile import HistoryPolicy, Profile, ProfilePolicy, normalize_profile, policy_for
from miniclawd.domain.parsing.response_parser import ResponseParser, extract_thinking
from miniclawd.domain.ports import ChatBackend, StoragePort, ToolPort
from miniclawd.domain.prompts.system_prompts import build_system_prompt
from miniclawd.domain.streaming.events import ProgressEvent, ProgressEventType
from miniclawd.domain.streaming.streaming_handler import StreamingHandler
from miniclawd.domain.tool.tool_executor import ToolExecutor
from miniclawd.domain.tool.tool_registry import ToolRegistry
from miniclawd.infrastructure.config import Settings, get_settings
from miniclawd.infrastructure.observability.logging import MetricsCollector, agent_logger
from miniclawd.infrastructure.persistence.json_file_store import JsonFileStore

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[ProgressEvent], Any]
TokenCallback = Callable[[str], Any]

BACKEND_ERROR_MESSAGE = "Backend error: {reason}"
NO_VALID_ACTION_MESSAGE = "I'm not sure what to do with this response: {payload}"
TURN_LIMIT_MESSAGE = "Agent step limit reached ({turns} turns)."
TIME_LIMIT_MESSAGE = "Agent time limit reached after {seconds:g}s."


class Agent:
    """Reason/act/observe loop over a chat backend, tools and bounded memory.

    Every terminal outcome of run() is returned as a string: backend
    failures, unusable generator output and exhausted bounds included.
    """

    def __init__(
        self,
        backend: ChatBackend,
        tools: Optional[Union[ToolRegistry, Iterable[ToolPort]]] = None,
        *,
        profile: Optional[Union[Profile, str]] = None,
        settings: Optional[Settings] = None,
        memory: Optional[ConversationMemory] = None,
        storage: Optional[StoragePort] = None,
        metrics: Optional[MetricsCollector] = None,
        parser: Optional[ResponseParser] = None,
        session_id: Optional[str] = None,
    ):
        self.settings = settings or get_settings()
        self.backend = backend
        self.session_id = session_id or uuid.uuid4().hex
        self.metrics = metrics or MetricsCollector()
        self.parser = parser or ResponseParser()

        self._profile = normalize_profile(profile if profile is not None else self.settings.profile)
        self.all_tools = tools if isinstance(tools, ToolRegistry) else ToolRegistry(tools)

        if memory is None:
            max_messages, max_bytes = self.settings.limits_for(self._profile)
            if storage is None and self.settings.memory_path is not None:
                storage = JsonFileStore(self.settings.memory_path)
            memory = ConversationMemory(
                max_messages=max_messages,
                max_bytes=max_bytes,
                storage=storage,
                storage_key=self.settings.memory_key,
                min_retained=self.settings.eviction_floor,
            )
        self.memory = memory

        self.state = AgentState(session_id=self.session_id, profile=self._profile)
        self._run_lock = asyncio.Lock()
        self._apply_profile()

    # ------------------------------------------------------------------
    # Profile control
    # ------------------------------------------------------------------

    @property
    def profile(self) -> Profile:
        return self._profile

    @profile.setter
    def profile(self, value: Union[Profile, str]):
        self.set_profile(value)

    def set_profile(self, value: Union[Profile, str]) -> Profile:
        """Hot-swap the active profile; runs already in flight are unaffected"""

        new_profile = normalize_profile(value)
        if new_profile is self._profile:
            return new_profile

        previous = self._profile
        self._profile = new_profile
        self._apply_profile()

        agent_logger.log_agent_event(
            "profile_swap",
            self.session_id,
            {"from": previous.value, "to": new_profile.value, "tools": len(self.tools)},
        )
        return new_profile

    def _apply_profile(self):
        self.policy: ProfilePolicy = policy_for(self._profile)
        self.tools: ToolRegistry = self.all_tools.visible_for(self.policy)
        self.system_prompt: str = build_system_prompt(self._profile, self.tools)
        self.state.profile = self._profile

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    async def run(
        self,
        user_input: str,
        on_progress: Optional[ProgressCallback] = None,
        on_token: Optional[TokenCallback] = None,
    ) -> str:
        """Process one user input and return the answer or failure text"""

        result = await self.run_detailed(user_input, on_progress=on_progress, on_token=on_token)
        return result.output

    async def run_detailed(
        self,
        user_input: str,
        on_progress: Optional[ProgressCallback] = None,
        on_token: Optional[TokenCallback] = None,
    ) -> RunResult:
        """Process one user input and return the full run outcome"""

        async with self._run_lock:
            run_id = uuid.uuid4().hex[:12]
            with structlog.contextvars.bound_contextvars(session_id=self.session_id, run_id=run_id):
                # Snapshot so a hot-swap cannot change this run midway
                profile = self._profile
                policy = self.policy
                prompt = self.system_prompt
                registry = self.tools

                handler = StreamingHandler(sink=on_progress, on_token=on_token, session_id=self.session_id)
                started = time.perf_counter()
                self.state.runs += 1
                self.state.turn = 0
                self.metrics.increment_counter("runs", tags={"profile": profile.value})

                agent_logger.log_agent_event(
                    "run_start",
                    self.session_id,
                    {"profile": profile.value, "input_length": len(user_input)},
                )

                if policy.uses_memory:
                    result = await self._run_loop(user_input, handler, policy, prompt, registry)
                else:
                    result = await self._run_chat(user_input, handler)

                result.duration_ms = (time.perf_counter() - started) * 1000
                self.metrics.record_latency("run", result.duration_ms, tags={"profile": profile.value})
                if not result.ok:
                    self.metrics.increment_counter("run_failures", tags={"failure": result.failure.value})

                agent_logger.log_agent_event(
                    "run_end",
                    self.session_id,
                    {
                        "status": result.status.value,
                        "failure": result.failure.value if result.failure else None,
                        "turns": result.turns,
                        "tool_calls": result.tool_calls,
                        "duration_ms": round(result.duration_ms, 2),
                    },
                )
                return result

    async def _run_chat(self, user_input: str, handler: StreamingHandler) -> RunResult:
        """Single backend call with no prompt, history, tools or memory"""

        self.state.turn = 1
        self.state.update_status(AgentStatus.GENERATING, condition="chat")
        await handler.emit(ProgressEventType.THINKING, "Thinking...", turn=1)

        try:
            raw = await self._generate([Message(role=Role.USER, content=user_input)], handler)
        except BackendError as e:
            return await self._fail(
                handler, FailureKind.BACKEND_ERROR, BACKEND_ERROR_MESSAGE.format(reason=e), turns=1
            )

        self.state.update_status(AgentStatus.PARSING)
        thought, remainder = extract_thinking(raw)
        if thought:
            await handler.emit(ProgressEventType.THOUGHT, thought, turn=1)

        answer = remainder.strip()
        self.state.update_status(AgentStatus.ANSWERING)
        await handler.emit(ProgressEventType.ANSWER, answer, turn=1)
        self.state.update_status(AgentStatus.COMPLETED)

        return RunResult(output=answer, status=AgentStatus.COMPLETED, turns=1, thought=thought)

    async def _run_loop(
        self,
        user_input: str,
        handler: StreamingHandler,
        policy: ProfilePolicy,
        prompt: str,
        registry: ToolRegistry,
    ) -> RunResult:
        """Generate, parse and dispatch until an answer or a bound is hit"""

        await self.memory.init()
        cursor = self.memory.total_appended
        await self.memory.add_message(Role.USER, user_input)

        executor = ToolExecutor(
            registry,
            self.memory,
            metrics=self.metrics,
            tool_timeout=self.settings.tool_timeout_seconds,
            include_thought=self.settings.store_thoughts,
        )

        max_turns = self.settings.max_turns
        deadline = None
        if self.settings.max_run_seconds is not None:
            deadline = time.monotonic() + self.settings.max_run_seconds

        tool_calls = 0
        last_thought: Optional[str] = None

        for turn in range(1, max_turns + 1):
            if deadline is not None and time.monotonic() >= deadline:
                return await self._fail(
                    handler,
                    FailureKind.TIME_LIMIT,
                    TIME_LIMIT_MESSAGE.format(seconds=self.settings.max_run_seconds),
                    turns=turn - 1,
                    tool_calls=tool_calls,
                )

            self.state.turn = turn
            self.state.update_status(AgentStatus.GENERATING)
            await handler.emit(ProgressEventType.THINKING, f"Thinking... (step {turn})", turn=turn)

            context = self._build_context(prompt, policy, cursor)
            try:
                raw = await self._generate(context, handler)
            except BackendError as e:
                return await self._fail(
                    handler,
                    FailureKind.BACKEND_ERROR,
                    BACKEND_ERROR_MESSAGE.format(reason=e),
                    turns=turn,
                    tool_calls=tool_calls,
                )

            self.state.update_status(AgentStatus.PARSING)
            parsed = self.parser.parse(raw)
            if parsed.thought:
                last_thought = parsed.thought
                await handler.emit(ProgressEventType.THOUGHT, parsed.thought, turn=turn)

            first_answer: Optional[str] = None
            invalid: List[InvalidAction] = []
            dispatched = 0

            # Whole batch runs in order; the earliest answer wins afterwards
            for action in parsed.actions:
                if action.thought:
                    last_thought = action.thought
                    await handler.emit(ProgressEventType.THOUGHT, action.thought, turn=turn)

                if isinstance(action, AnswerAction):
                    self.state.update_status(AgentStatus.ANSWERING)
                    await self.memory.add_message(
                        Role.ASSISTANT, action.to_content(self.settings.store_thoughts)
                    )
                    await handler.emit(ProgressEventType.ANSWER, action.answer, turn=turn)
                    if first_answer is None:
                        first_answer = action.answer

                elif isinstance(action, ToolAction):
                    self.state.update_status(AgentStatus.DISPATCHING)
                    await handler.emit(
                        ProgressEventType.TOOL_START,
                        f"Executing tool: {action.tool}",
                        turn=turn,
                        tool=action.tool,
                        args=action.args,
                    )
                    observation = await executor.invoke(action)
                    dispatched += 1
                    await handler.emit(
                        ProgressEventType.OBSERVATION,
                        observation.content,
                        turn=turn,
                        tool=observation.tool,
                        success=observation.success,
                        error_kind=observation.error_kind,
                    )

                else:
                    invalid.append(action)
                    logger.warning("Unusable action in batch", payload=action.payload, turn=turn)

            tool_calls += dispatched

            if first_answer is not None:
                self.state.update_status(AgentStatus.COMPLETED)
                return RunResult(
                    output=first_answer,
                    status=AgentStatus.COMPLETED,
                    turns=turn,
                    tool_calls=tool_calls,
                    thought=last_thought,
                )

            if dispatched:
                continue

            payload = invalid[0].to_content() if invalid else raw
            await self.memory.add_message(Role.ASSISTANT, payload)
            return await self._fail(
                handler,
                FailureKind.NO_VALID_ACTION,
                NO_VALID_ACTION_MESSAGE.format(payload=payload),
                turns=turn,
                tool_calls=tool_calls,
            )

        return await self._fail(
            handler,
            FailureKind.TURN_LIMIT,
            TURN_LIMIT_MESSAGE.format(turns=max_turns),
            turns=max_turns,
            tool_calls=tool_calls,
        )

    def _build_context(self, prompt: str, policy: ProfilePolicy, cursor: int) -> List[Message]:
        if policy.history is HistoryPolicy.CURRENT_RUN:
            history = self.memory.messages_since(cursor)
        else:
            history = self.memory.get_messages()

        context: List[Message] = []
        if prompt:
            context.append(Message(role=Role.SYSTEM, content=prompt))
        context.extend(history)
        return context

    async def _generate(self, messages: List[Message], handler: StreamingHandler) -> str:
        """Call the backend under the configured timeout"""

        timeout = self.settings.backend_timeout_seconds
        started = time.perf_counter()

        try:
            if handler.streaming:
                call = self.backend.chat(messages, on_token=handler.stream_token)
            else:
                call = self.backend.chat(messages)
            reply = await asyncio.wait_for(call, timeout=timeout)
        except BackendError:
            raise
        except asyncio.TimeoutError as e:
            raise BackendTimeoutError(f"no reply within {timeout:g}s") from e
        except Exception as e:
            raise BackendError(f"{type(e).__name__}: {e}") from e
        finally:
            self.metrics.record_latency("llm_call", (time.perf_counter() - started) * 1000)
            self.metrics.increment_counter("llm_calls")

        if handler.streaming:
            await handler.flush_stream()

        if not isinstance(reply, str):
            raise BackendError(f"backend returned {type(reply).__name__} instead of text")
        return reply

    async def _fail(
        self,
        handler: StreamingHandler,
        failure: FailureKind,
        message: str,
        turns: int = 0,
        tool_calls: int = 0,
    ) -> RunResult:
        self.state.log_error(message, {"failure": failure.value, "turn": turns})
        self.state.update_status(AgentStatus.FAILED, condition=failure.value)
        logger.warning("Run failed", failure=failure.value, reason=message, turns=turns)
        await handler.emit(ProgressEventType.ERROR, message, turn=turns or None, failure=failure.value)

        return RunResult(
            output=message,
            status=AgentStatus.FAILED,
            failure=failure,
            turns=turns,
            tool_calls=tool_calls,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    async def reset(self):
        """Forget the conversation"""

        await self.memory.clear()
        self.state.update_status(AgentStatus.IDLE, condition="reset")

    def get_metrics(self) -> Dict[str, Any]:
        return self.metrics.get_metrics_summary()

    def get_status(self) -> Dict[str, Any]:
        """Health snapshot: state, memory usage, tools and metrics"""

        return {
            **self.state.get_state_summary(),
            "memory": self.memory.get_stats(),
            "tools": self.tools.names(),
            "max_turns": self.settings.max_turns,
            "metrics": self.get_metrics(),
        }
