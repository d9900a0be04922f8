import structlog
import logging
import sys
import time
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
import os

LOG_FORMATS = ("console", "json")
PREVIEW_CHARS = 200


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    service_name: str = "miniclawd"
) -> None:
    """Configure stdlib logging and structlog for the runtime"""

    if log_format not in LOG_FORMATS:
        raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger("miniclawd").setLevel(level)

    renderer = structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=_shared_processors() + [renderer],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("MINICLAWD_ENVIRONMENT", "development"),
    )


def _shared_processors() -> List[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        add_service_context,
    ]


def add_service_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Stamp entries with a UTC timestamp and the active session/run ids"""

    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())

    bound = structlog.contextvars.get_contextvars()
    for key in ("session_id", "run_id"):
        if bound.get(key) and key not in event_dict:
            event_dict[key] = bound[key]

    return event_dict


class AgentLogger:
    """Structured events for runs, tool calls, state changes and memory"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def log_agent_event(self, event_type: str, session_id: str, data: Optional[Dict[str, Any]] = None, **kwargs):
        self.logger.info("agent_event", event_type=event_type, session_id=session_id, data=data or {}, **kwargs)

    def log_tool_execution(
        self,
        tool_name: str,
        input_data: Dict[str, Any],
        output_data: Optional[str] = None,
        duration_ms: Optional[float] = None,
        success: bool = True,
        error: Optional[str] = None
    ):
        """One entry per dispatched tool; output is truncated to a preview"""

        log = self.logger.info if success else self.logger.warning
        log(
            "tool_execution",
            tool_name=tool_name,
            input_data=input_data,
            output_preview=output_data[:PREVIEW_CHARS] if output_data else None,
            duration_ms=round(duration_ms, 2) if duration_ms is not None else None,
            success=success,
            error=error
        )

    def log_state_transition(
        self,
        session_id: str,
        from_state: str,
        to_state: str,
        condition: Optional[str] = None,
        turn: Optional[int] = None
    ):
        self.logger.debug(
            "state_transition",
            session_id=session_id,
            transition=f"{from_state} -> {to_state}",
            condition=condition,
            turn=turn
        )

    def log_memory_update(self, action: str, details: Optional[Dict[str, Any]] = None):
        self.logger.debug("memory_update", action=action, **(details or {}))


# Global logger instance
agent_logger = AgentLogger("miniclawd")


class LatencyStats:
    """Running count/sum/min/max for one operation"""

    __slots__ = ("count", "total", "minimum", "maximum")

    def __init__(self):
        self.count = 0
        self.total = 0.0
        self.minimum: Optional[float] = None
        self.maximum = 0.0

    def add(self, duration_ms: float):
        self.count += 1
        self.total += duration_ms
        self.minimum = duration_ms if self.minimum is None else min(self.minimum, duration_ms)
        self.maximum = max(self.maximum, duration_ms)

    def summary(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg": self.total / self.count if self.count else 0,
            "min": self.minimum or 0,
            "max": self.maximum,
        }


class MetricsCollector:
    """Per-agent latency, counter and gauge metrics.

    Each agent owns its own collector; there is no process-wide instance.
    Every recorded value is also logged at debug level.
    """

    def __init__(self, logger: Optional[AgentLogger] = None):
        self.latencies: Dict[str, LatencyStats] = {}
        self.counters: Dict[str, int] = {}
        self.gauges: Dict[str, float] = {}
        self._logger = logger or agent_logger
        self._started = time.monotonic()

    def record_latency(self, operation: str, duration_ms: float, tags: Optional[Dict[str, str]] = None):
        self.latencies.setdefault(operation, LatencyStats()).add(duration_ms)
        self._emit("latency", operation, duration_ms, tags)

    def increment_counter(self, name: str, value: int = 1, tags: Optional[Dict[str, str]] = None):
        self.counters[name] = self.counters.get(name, 0) + value
        self._emit("counter", name, value, tags)

    def set_gauge(self, name: str, value: float, tags: Optional[Dict[str, str]] = None):
        self.gauges[name] = value
        self._emit("gauge", name, value, tags)

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Flat snapshot: latency.<op> stats, counters, gauges and uptime"""

        summary: Dict[str, Any] = {"uptime_seconds": round(time.monotonic() - self._started, 3)}
        for operation, stats in self.latencies.items():
            summary[f"latency.{operation}"] = stats.summary()
        summary.update(self.counters)
        summary.update(self.gauges)
        return summary

    def reset(self):
        self.latencies.clear()
        self.counters.clear()
        self.gauges.clear()
        self._started = time.monotonic()

    def _emit(self, metric_type: str, name: str, value: float, tags: Optional[Dict[str, str]]):
        self._logger.logger.debug("metric", metric_type=metric_type, name=name, value=value, tags=tags or {})
