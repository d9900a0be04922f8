from typing import Any, Dict, Iterable, List
from enum import Enum
import json

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    """Conversation roles understood by every backend"""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """A single role-tagged conversation entry"""
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def to_dict(self) -> Dict[str, Any]:
        """Plain {role, content} mapping used for storage and size accounting"""
        return {"role": self.role.value, "content": self.content}


def dump_messages(messages: Iterable[Message]) -> List[Dict[str, Any]]:
    """Convert messages to plain dictionaries"""
    return [message.to_dict() for message in messages]


def serialized_size(messages: Iterable[Message]) -> int:
    """UTF-8 byte length of the compact JSON array of messages"""
    payload = json.dumps(dump_messages(messages), ensure_ascii=False, separators=(",", ":"))
    return len(payload.encode("utf-8"))
