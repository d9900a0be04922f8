from typing import Dict, Any, Optional
from pydantic import BaseModel, Field
from datetime import datetime, timezone
from enum import Enum


class ProgressEventType(str, Enum):
    """Progress event kinds emitted by the agent loop"""
    THINKING = "thinking"
    THOUGHT = "thought"
    TOOL_START = "tool_start"
    OBSERVATION = "observation"
    ANSWER = "answer"
    ERROR = "error"


class ProgressEvent(BaseModel):
    """A discrete progress notification for observers"""
    type: ProgressEventType
    message: str
    turn: Optional[int] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    session_id: Optional[str] = None
