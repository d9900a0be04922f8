from typing import Dict, List, Any, Iterable, Optional
import json

import structlog

from miniclawd.domain.exceptions import ToolNotFoundError
from miniclawd.domain.models.profile import ProfilePolicy
from miniclawd.domain.ports import ToolPort
from miniclawd.domain.tool.base_tool import describe_tool

logger = structlog.get_logger(__name__)


class ToolRegistry:
    """Registry for managing available tools"""

    def __init__(self, tools: Optional[Iterable[ToolPort]] = None):
        self.tools: Dict[str, ToolPort] = {}

        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolPort):
        """Register a new tool"""

        name = getattr(tool, "name", None)
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"Tool {tool!r} has no name")
        if name in self.tools:
            raise ValueError(f"Tool '{name}' is already registered")
        if not callable(getattr(tool, "execute", None)):
            raise ValueError(f"Tool '{name}' has no execute method")

        self.tools[name] = tool
        logger.debug("Registered tool", tool=name)

    def get(self, name: str) -> Optional[ToolPort]:
        """Get a tool by exact name"""

        return self.tools.get(name)

    def require(self, name: str) -> ToolPort:
        """Get a tool by exact name or raise ToolNotFoundError"""

        tool = self.tools.get(name)
        if tool is None:
            available = ", ".join(self.tools) or "none"
            raise ToolNotFoundError(f"Tool '{name}' not found. Available tools: {available}")
        return tool

    def names(self) -> List[str]:
        """Names of all registered tools"""

        return list(self.tools.keys())

    def all(self) -> List[ToolPort]:
        """All registered tools"""

        return list(self.tools.values())

    def describe(self) -> List[Dict[str, Any]]:
        """Descriptors for all registered tools"""

        return [describe_tool(tool) for tool in self.tools.values()]

    def to_prompt_json(self, indent: Optional[int] = 2) -> str:
        """Tool descriptors rendered for a system prompt"""

        separators = None if indent else (",", ":")
        return json.dumps(self.describe(), indent=indent, separators=separators, ensure_ascii=False)

    def visible_for(self, policy: ProfilePolicy) -> "ToolRegistry":
        """Registry view a profile is allowed to use"""

        if policy.tools_enabled:
            return self
        return ToolRegistry()

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)
