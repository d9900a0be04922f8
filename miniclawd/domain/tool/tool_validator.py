from typing import Any, Dict

import jsonschema
from pydantic import BaseModel, ValidationError

from miniclawd.domain.exceptions import ToolValidationError


# Parameter validation against the tool's declared schema
class ToolParameterValidator:
    @staticmethod
    def validate_tool_call(tool: Any, parameters: Any) -> Dict[str, Any]:
        schema = getattr(tool, "argument_schema", None)
        name = getattr(tool, "name", "?")

        if not isinstance(parameters, dict):
            raise ToolValidationError(f"Invalid arguments for '{name}': expected an object")

        if schema is None:
            return parameters

        # Pydantic model schema
        if isinstance(schema, type) and issubclass(schema, BaseModel):
            try:
                return schema.model_validate(parameters).model_dump()
            except ValidationError as e:
                details = "; ".join(
                    f"{'.'.join(str(part) for part in err['loc']) or '<root>'}: {err['msg']}"
                    for err in e.errors()
                )
                raise ToolValidationError(f"Invalid arguments for '{name}': {details}") from e

        # JSON Schema validation
        try:
            jsonschema.validate(parameters, schema)
        except jsonschema.ValidationError as e:
            raise ToolValidationError(f"Invalid arguments for '{name}': {e.message}") from e
        except jsonschema.SchemaError as e:
            raise ToolValidationError(f"Tool '{name}' declares an invalid schema: {e.message}") from e

        return parameters
