from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from enum import Enum

from miniclawd.domain.models.profile import Profile
from miniclawd.infrastructure.observability.logging import agent_logger


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AgentStatus(str, Enum):
    """Agent execution status"""
    IDLE = "idle"
    GENERATING = "generating"
    PARSING = "parsing"
    ANSWERING = "answering"
    DISPATCHING = "dispatching"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Terminal failures surfaced to the caller as result strings"""
    BACKEND_ERROR = "backend_error"
    NO_VALID_ACTION = "no_valid_action"
    TURN_LIMIT = "turn_limit"
    TIME_LIMIT = "time_limit"


class RunResult(BaseModel):
    """Outcome of a single run call"""
    output: str
    status: AgentStatus
    failure: Optional[FailureKind] = None
    turns: int = 0
    tool_calls: int = 0
    thought: Optional[str] = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == AgentStatus.COMPLETED


class AgentState(BaseModel):
    """Mutable per-agent execution state"""
    session_id: str
    profile: Profile = Field(default=Profile.HIGH_POWER)
    status: AgentStatus = Field(default=AgentStatus.IDLE)
    turn: int = 0
    runs: int = 0
    error_log: List[Dict[str, Any]] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    last_activity: datetime = Field(default_factory=_utcnow)

    def update_status(self, status: AgentStatus, condition: Optional[str] = None):
        """Update agent status and log the transition"""
        previous = self.status
        self.status = status
        self.last_activity = _utcnow()

        if previous != status:
            agent_logger.log_state_transition(
                session_id=self.session_id,
                from_state=previous.value,
                to_state=status.value,
                condition=condition,
                turn=self.turn,
            )

    def log_error(self, error: str, context: Optional[Dict[str, Any]] = None):
        """Log an error"""
        self.error_log.append({
            "timestamp": _utcnow(),
            "error": error,
            "context": context or {}
        })
        # Keep only the last 50 errors
        if len(self.error_log) > 50:
            self.error_log = self.error_log[-50:]

    def get_state_summary(self) -> Dict[str, Any]:
        """Get a summary of the current state"""
        return {
            "session_id": self.session_id,
            "profile": self.profile.value,
            "status": self.status.value,
            "turn": self.turn,
            "runs": self.runs,
            "errors": len(self.error_log),
            "last_activity": self.last_activity.isoformat()
        }
