"""Tests for profile normalization, messages, actions and prompts."""

import pytest

from miniclawd.domain.models.actions import AnswerAction, InvalidAction, ToolAction
from miniclawd.domain.models.messages import Message, Role, dump_messages, serialized_size
from miniclawd.domain.models.profile import HistoryPolicy, Profile, normalize_profile, policy_for
from miniclawd.domain.prompts.system_prompts import build_system_prompt
from miniclawd.domain.tool.tool_registry import ToolRegistry


class TestProfiles:
    @pytest.mark.parametrize("value, expected", [
        (Profile.CHAT, Profile.CHAT),
        ("LOW_POWER", Profile.LOW_POWER),
        ("  low ", Profile.LOW_POWER),
        ("low-power", Profile.LOW_POWER),
        ("high", Profile.HIGH_POWER),
        ("Chat", Profile.CHAT),
        ("", Profile.HIGH_POWER),
        ("medium", Profile.HIGH_POWER),
        (None, Profile.HIGH_POWER),
        (3, Profile.HIGH_POWER),
    ])
    def test_normalize(self, value, expected):
        assert normalize_profile(value) is expected

    def test_policies(self):
        assert policy_for(Profile.LOW_POWER).history is HistoryPolicy.CURRENT_RUN
        assert policy_for(Profile.HIGH_POWER).history is HistoryPolicy.FULL
        chat = policy_for("chat")
        assert chat.history is HistoryPolicy.NONE
        assert not chat.tools_enabled
        assert not chat.uses_memory


class TestMessages:
    def test_frozen(self):
        message = Message(role=Role.USER, content="hi")
        with pytest.raises(Exception):
            message.content = "changed"

    def test_dump_and_size(self):
        messages = [Message(role=Role.USER, content="hi")]
        assert dump_messages(messages) == [{"role": "user", "content": "hi"}]
        assert serialized_size(messages) == len('[{"role":"user","content":"hi"}]')

    def test_size_counts_utf8_bytes(self):
        ascii_size = serialized_size([Message(role=Role.USER, content="e")])
        accented_size = serialized_size([Message(role=Role.USER, content="é")])
        assert accented_size == ascii_size + 1


class TestActions:
    def test_to_content(self):
        action = ToolAction(tool="echo", args={"text": "ü"}, thought="why")
        assert action.to_content() == '{"tool":"echo","args":{"text":"ü"}}'
        assert action.to_content(include_thought=True) == (
            '{"thought":"why","tool":"echo","args":{"text":"ü"}}'
        )
        assert AnswerAction(answer="done").to_content(include_thought=True) == '{"answer":"done"}'
        assert InvalidAction(payload={"tool": ""}).to_content() == '{"tool":""}'


class TestPrompts:
    def test_chat_has_no_prompt(self, tools):
        assert build_system_prompt(Profile.CHAT, ToolRegistry(tools)) == ""

    def test_tools_embedded(self, tools):
        registry = ToolRegistry(tools)
        low = build_system_prompt(Profile.LOW_POWER, registry)
        high = build_system_prompt("HIGH_POWER", registry)

        assert "LOW POWER" in low
        assert '"name":"explode"' in low
        assert "HIGH POWER" in high
        assert '"name": "explode"' in high
        assert '{"thought": "why this tool", "tool": "tool_name"' in high

    def test_empty_registry(self):
        assert "Tools: []" in build_system_prompt(Profile.LOW_POWER, ToolRegistry())
