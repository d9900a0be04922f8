from typing import Dict, Any, Optional, List, Callable
import inspect
import time

import structlog

from miniclawd.domain.streaming.events import ProgressEvent, ProgressEventType

logger = structlog.get_logger(__name__)

EventSink = Callable[[ProgressEvent], Any]
TokenSink = Callable[[str], Any]


async def _deliver(callback: Callable, value: Any):
    result = callback(value)
    if inspect.isawaitable(result):
        await result


class StreamingHandler:
    """Delivers agent progress events and partial tokens to observers.

    Delivery is awaited in emission order; observer failures are logged and
    never reach the agent loop.
    """

    def __init__(
        self,
        sink: Optional[EventSink] = None,
        on_token: Optional[TokenSink] = None,
        session_id: Optional[str] = None,
        flush_chars: int = 50,
        flush_interval: float = 0.1,
    ):
        self.sink = sink
        self.on_token = on_token
        self.session_id = session_id
        self.flush_chars = flush_chars
        self.flush_interval = flush_interval
        self.event_handlers: Dict[ProgressEventType, List[EventSink]] = {}
        self._buffer = ""
        self._last_send = time.monotonic()

    @property
    def streaming(self) -> bool:
        return self.on_token is not None

    def register_event_handler(self, event_type: ProgressEventType, handler: EventSink):
        """Register a handler for one event type"""

        event_type = ProgressEventType(event_type)
        if event_type not in self.event_handlers:
            self.event_handlers[event_type] = []
        self.event_handlers[event_type].append(handler)

    async def emit(
        self,
        event_type: ProgressEventType,
        message: str,
        turn: Optional[int] = None,
        **data: Any
    ) -> ProgressEvent:
        """Build an event and deliver it to the sink and registered handlers"""

        event = ProgressEvent(
            type=event_type,
            message=message,
            turn=turn,
            data=data,
            session_id=self.session_id,
        )

        callbacks: List[EventSink] = []
        if self.sink is not None:
            callbacks.append(self.sink)
        callbacks.extend(self.event_handlers.get(event.type, []))

        for callback in callbacks:
            try:
                await _deliver(callback, event)
            except Exception as e:
                logger.error("Error in event handler",
                             event_type=event.type.value,
                             error=str(e))

        return event

    async def stream_token(self, token: str):
        """Buffer a partial token and forward it when the buffer is due"""

        if self.on_token is None or not token:
            return

        self._buffer += token

        # Send buffered content every flush_interval seconds or flush_chars chars
        now = time.monotonic()
        if now - self._last_send > self.flush_interval or len(self._buffer) >= self.flush_chars:
            await self._send_buffer()
            self._last_send = now

    async def flush_stream(self):
        """Flush any remaining buffered content"""

        if self._buffer:
            await self._send_buffer()
        self._last_send = time.monotonic()

    async def _send_buffer(self):
        chunk, self._buffer = self._buffer, ""
        try:
            await _deliver(self.on_token, chunk)
        except Exception as e:
            logger.error("Error in token observer", error=str(e))
