"""Tests for ToolRegistry, tool descriptors and argument validation."""

import json

import pytest
from pydantic import BaseModel

from miniclawd.domain.exceptions import ToolNotFoundError, ToolValidationError
from miniclawd.domain.models.profile import Profile, policy_for
from miniclawd.domain.ports import ToolPort
from miniclawd.domain.tool.base_tool import EMPTY_SCHEMA, FunctionTool, schema_to_json
from miniclawd.domain.tool.tool_registry import ToolRegistry
from miniclawd.domain.tool.tool_validator import ToolParameterValidator


class WeatherArgs(BaseModel):
    city: str
    days: int = 1


class TestRegistry:
    def test_register_and_lookup(self, tools):
        registry = ToolRegistry(tools)
        assert registry.names() == ["echo", "explode"]
        assert "echo" in registry
        assert len(registry) == 2
        assert registry.get("missing") is None
        assert registry.require("echo") is tools[0]

    def test_require_missing(self, tools):
        with pytest.raises(ToolNotFoundError, match="Available tools: echo, explode"):
            ToolRegistry(tools).require("ghost")

    def test_duplicate_rejected(self, echo_tool):
        registry = ToolRegistry([echo_tool])
        with pytest.raises(ValueError, match="already registered"):
            registry.register(echo_tool)

    def test_nameless_tool_rejected(self):
        with pytest.raises(ValueError):
            ToolRegistry([FunctionTool("", "nothing", lambda: None)])

    def test_tool_without_execute_rejected(self):
        class NotATool:
            name = "fake"

        with pytest.raises(ValueError, match="no execute"):
            ToolRegistry([NotATool()])

    def test_tools_satisfy_port(self, echo_tool):
        assert isinstance(echo_tool, ToolPort)

    def test_describe(self, tools):
        described = ToolRegistry(tools).describe()
        assert described[0]["name"] == "echo"
        assert described[0]["parameters"]["required"] == ["text"]
        assert described[1]["parameters"] == EMPTY_SCHEMA

    def test_prompt_json_indent(self, tools):
        registry = ToolRegistry(tools)
        compact = registry.to_prompt_json(indent=None)
        pretty = registry.to_prompt_json(indent=2)

        assert '"name":"echo"' in compact
        assert "\n" not in compact
        assert '"name": "echo"' in pretty
        assert json.loads(compact) == json.loads(pretty)

    def test_visibility_by_profile(self, tools):
        registry = ToolRegistry(tools)
        assert registry.visible_for(policy_for(Profile.HIGH_POWER)) is registry
        assert registry.visible_for(policy_for(Profile.LOW_POWER)) is registry
        assert len(registry.visible_for(policy_for(Profile.CHAT))) == 0


class TestSchemas:
    def test_pydantic_schema_rendered(self):
        tool = FunctionTool("weather", "Forecast", lambda city, days=1: "sunny", argument_schema=WeatherArgs)
        schema = tool.describe()["parameters"]
        assert set(schema["properties"]) == {"city", "days"}
        assert schema["required"] == ["city"]

    def test_unsupported_schema_type(self):
        with pytest.raises(TypeError):
            schema_to_json("not a schema")


class TestValidator:
    def test_no_schema_passes_through(self, exploding_tool):
        assert ToolParameterValidator.validate_tool_call(exploding_tool, {"x": 1}) == {"x": 1}

    def test_non_object_arguments(self, echo_tool):
        with pytest.raises(ToolValidationError, match="expected an object"):
            ToolParameterValidator.validate_tool_call(echo_tool, ["text"])

    def test_json_schema_type_mismatch(self, echo_tool):
        with pytest.raises(ToolValidationError, match="Invalid arguments for 'echo'"):
            ToolParameterValidator.validate_tool_call(echo_tool, {"text": 5})

    def test_invalid_declared_schema(self):
        tool = FunctionTool("odd", "Bad schema", lambda: "x", argument_schema={"type": "not-a-type"})
        with pytest.raises(ToolValidationError, match="invalid schema"):
            ToolParameterValidator.validate_tool_call(tool, {})

    def test_pydantic_defaults_applied(self):
        tool = FunctionTool("weather", "Forecast", lambda city, days: "sunny", argument_schema=WeatherArgs)
        assert ToolParameterValidator.validate_tool_call(tool, {"city": "Oslo"}) == {"city": "Oslo", "days": 1}
