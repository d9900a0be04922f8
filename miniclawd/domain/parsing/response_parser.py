"""
domain.parsing.response_parser - Recover actions from generated text.

Generators are asked for JSON but routinely wrap it in prose, markdown
fences or a <think> section, or emit several objects in a row. The parser
recovers every usable {"tool": ...} / {"answer": ...} object it can find and
falls back to treating the whole reply as a plain-text answer. It never
raises.
"""

from __future__ import annotations

import json
import re
from typing import Any, List, Optional, Tuple

import structlog

from miniclawd.domain.models.actions import (
    Action,
    AnswerAction,
    InvalidAction,
    ParseResult,
    ToolAction,
)

logger = structlog.get_logger(__name__)

_THINK_RE = re.compile(r"<think>(.*?)</think>", re.IGNORECASE | re.DOTALL)
_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_ACTION_KEYS = ("tool", "answer")


def extract_thinking(text: str) -> Tuple[Optional[str], str]:
    """Split off the first <think>...</think> section.

    Returns (thought, remaining_text). The delimiters are removed along with
    the section; later sections are left untouched.
    """
    match = _THINK_RE.search(text)
    if not match:
        return None, text

    thought = match.group(1).strip()
    remainder = text[:match.start()] + text[match.end():]
    return thought or None, remainder


def strip_code_fences(text: str) -> str:
    """Remove ``` and ```json markers and trim whitespace."""
    return _FENCE_RE.sub("", text).strip()


class ResponseParser:
    """Turns raw generated text into an ordered list of actions."""

    def __init__(self):
        self._decoder = json.JSONDecoder()

    def parse(self, text: Any) -> ParseResult:
        if text is None:
            text = ""
        elif not isinstance(text, str):
            text = str(text)

        thought, remainder = extract_thinking(text)
        cleaned = strip_code_fences(remainder)

        actions = self._parse_whole(cleaned)
        if not actions:
            actions = self._scan_objects(cleaned)

        if not actions:
            logger.debug("No JSON action found, degrading to plain answer", length=len(text))
            actions = [AnswerAction(answer=remainder.strip())]

        return ParseResult(actions=actions, thought=thought)

    def _parse_whole(self, text: str) -> List[Action]:
        try:
            value = json.loads(text)
        except ValueError:
            return []

        if isinstance(value, dict) and _is_action_like(value):
            return [build_action(value)]

        if isinstance(value, list):
            return [build_action(item) for item in value if isinstance(item, dict) and _is_action_like(item)]

        return []

    def _scan_objects(self, text: str) -> List[Action]:
        actions: List[Action] = []
        position = text.find("{")

        while position != -1:
            try:
                value, end = self._decoder.raw_decode(text, position)
            except ValueError:
                # Not the start of a valid object; try the next brace
                position = text.find("{", position + 1)
                continue

            if isinstance(value, dict) and _is_action_like(value):
                actions.append(build_action(value))
                position = text.find("{", end)
            else:
                # Actions may be nested inside a wrapper object
                position = text.find("{", position + 1)

        return actions


def _is_action_like(value: dict) -> bool:
    return any(key in value for key in _ACTION_KEYS)


def build_action(payload: dict) -> Action:
    """Build the typed action for a JSON object carrying tool or answer."""
    thought = payload.get("thought")
    if not isinstance(thought, str) or not thought.strip():
        thought = None

    if "answer" in payload and payload["answer"] is not None:
        answer = payload["answer"]
        if not isinstance(answer, str):
            answer = json.dumps(answer, ensure_ascii=False)
        return AnswerAction(answer=answer, thought=thought)

    tool = payload.get("tool")
    args = payload.get("args", {})
    if args is None:
        args = {}

    # Non-object args are dispatched and rejected by the validator
    if isinstance(tool, str) and tool.strip():
        return ToolAction(tool=tool.strip(), args=args, thought=thought)

    return InvalidAction(payload=payload, thought=thought)
