"""
domain.tool.base_tool - Base tool interface.

Tools are duck-typed (see domain.ports.ToolPort); BaseTool is a convenience
base class and FunctionTool adapts a plain callable.
"""

from __future__ import annotations

import asyncio
import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

EMPTY_SCHEMA: Dict[str, Any] = {"type": "object", "properties": {}}


def schema_to_json(schema: Any) -> Dict[str, Any]:
    """Render an argument schema (JSON Schema dict or pydantic model) as JSON Schema."""
    if schema is None:
        return dict(EMPTY_SCHEMA)
    if isinstance(schema, type) and issubclass(schema, BaseModel):
        return schema.model_json_schema()
    if isinstance(schema, dict):
        return schema
    raise TypeError(f"Unsupported argument schema type: {type(schema).__name__}")


def describe_tool(tool: Any) -> Dict[str, Any]:
    """Descriptor shown to the backend for any ToolPort-compatible object."""
    return {
        "name": tool.name,
        "description": getattr(tool, "description", ""),
        "parameters": schema_to_json(getattr(tool, "argument_schema", None)),
    }


class BaseTool(ABC):
    """Abstract base for agent tools."""

    name: str
    description: str = ""
    argument_schema: Any = None

    @abstractmethod
    async def execute(self, args: Dict[str, Any]) -> str:
        """Run the tool and return the observation text."""
        ...

    def describe(self) -> Dict[str, Any]:
        return describe_tool(self)


class FunctionTool(BaseTool):
    """Wrap a sync or async callable taking keyword arguments."""

    def __init__(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
        argument_schema: Optional[Any] = None,
    ):
        self.name = name
        self.description = description
        self.func = func
        self.argument_schema = argument_schema

    async def execute(self, args: Dict[str, Any]) -> str:
        if inspect.iscoroutinefunction(self.func):
            return await self.func(**args)

        result = await asyncio.to_thread(self.func, **args)
        if inspect.isawaitable(result):
            result = await result
        return result
