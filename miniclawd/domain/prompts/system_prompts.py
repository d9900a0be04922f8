"""
domain.prompts.system_prompts - System prompt variants per profile.

HIGH_POWER gets the verbose reason/act/observe prompt with indented tool
JSON, LOW_POWER a terse prompt with compact tool JSON, CHAT no prompt.
"""

from __future__ import annotations

from miniclawd.domain.models.profile import Profile, normalize_profile
from miniclawd.domain.tool.tool_registry import ToolRegistry

HIGH_POWER_PROMPT = """You are MiniClawd, an AI assistant running in HIGH POWER mode.

You can use these tools:
{tools}

Work in a loop until the request is handled:
1. REASON about the request and everything observed so far.
2. ACT by calling exactly the tool you need.
3. OBSERVE the tool output that comes back, then continue.

Always reply with a single JSON object and nothing else.
To call a tool:
{{"thought": "why this tool", "tool": "tool_name", "args": {{"arg_name": "value"}}}}

To finish:
{{"thought": "why you are done", "answer": "final reply for the user"}}

Rules:
- Only call tools from the list above.
- Answer directly with "answer" when no tool is needed.
- The full conversation history is available to you.
- If unsure, use "answer" to ask the user for clarification."""

LOW_POWER_PROMPT = """You are MiniClawd in LOW POWER mode.
Tools: {tools}
Reply with JSON only.
Tool call: {{"tool": "name", "args": {{...}}}}
Final answer: {{"answer": "text"}}
Be brief. Only this session's messages are visible."""


def build_system_prompt(profile: Profile, registry: ToolRegistry) -> str:
    """Render the system prompt for a profile and its visible tools"""
    profile = normalize_profile(profile)

    if profile is Profile.CHAT:
        return ""
    if profile is Profile.LOW_POWER:
        return LOW_POWER_PROMPT.format(tools=registry.to_prompt_json(indent=None))
    return HIGH_POWER_PROMPT.format(tools=registry.to_prompt_json(indent=2))
