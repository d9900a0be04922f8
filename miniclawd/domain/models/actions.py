from typing import Annotated, Any, Dict, List, Literal, Optional, Union
import json

from pydantic import BaseModel, Field


def _compact(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


class ToolAction(BaseModel):
    """Request to invoke a registered tool"""
    kind: Literal["tool"] = "tool"
    tool: str
    args: Any = Field(default_factory=dict)
    thought: Optional[str] = None

    def to_content(self, include_thought: bool = False) -> str:
        """Serialized form appended to memory as the assistant turn"""
        payload: Dict[str, Any] = {}
        if include_thought and self.thought:
            payload["thought"] = self.thought
        payload["tool"] = self.tool
        payload["args"] = self.args
        return _compact(payload)


class AnswerAction(BaseModel):
    """Final answer for the user"""
    kind: Literal["answer"] = "answer"
    answer: str
    thought: Optional[str] = None

    def to_content(self, include_thought: bool = False) -> str:
        """Serialized form appended to memory as the assistant turn"""
        payload: Dict[str, Any] = {}
        if include_thought and self.thought:
            payload["thought"] = self.thought
        payload["answer"] = self.answer
        return _compact(payload)


class InvalidAction(BaseModel):
    """JSON fragment that names a tool or answer but cannot be used"""
    kind: Literal["invalid"] = "invalid"
    payload: Dict[str, Any] = Field(default_factory=dict)
    thought: Optional[str] = None

    def to_content(self, include_thought: bool = False) -> str:
        """Serialized form appended to memory as the assistant turn"""
        return _compact(self.payload)


Action = Annotated[Union[ToolAction, AnswerAction, InvalidAction], Field(discriminator="kind")]


class ParseResult(BaseModel):
    """Actions recovered from one generated response"""
    actions: List[Action] = Field(default_factory=list)
    thought: Optional[str] = None

    @property
    def answers(self) -> List[AnswerAction]:
        return [action for action in self.actions if isinstance(action, AnswerAction)]

    @property
    def tool_calls(self) -> List[ToolAction]:
        return [action for action in self.actions if isinstance(action, ToolAction)]
