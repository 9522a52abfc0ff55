"""Tool schemas for function calling.

A ToolDefinition describes what an agent may call and checks the arguments
the model sends back. ``to_openai`` renders it as a chat completions
``tools`` entry.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# JSON Schema type name -> accepted Python types
JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list,),
    "object": (dict,),
}


@dataclass
class ToolParameter:
    """One named argument of a tool."""

    name: str
    type: str
    description: str
    required: bool = True
    enum: Optional[list[Any]] = None
    items: Optional[dict[str, Any]] = None  # element schema for arrays

    def __post_init__(self) -> None:
        if self.type not in JSON_TYPES:
            raise ValueError(
                f"parameter '{self.name}' has unsupported type '{self.type}'"
            )

    def schema(self) -> dict[str, Any]:
        """JSON Schema for this parameter."""
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.type == "array" and self.items:
            schema["items"] = self.items
        return schema

    def check(self, value: Any) -> Optional[str]:
        """Return why ``value`` is not acceptable, or None if it is."""
        # bool is an int subclass
        if isinstance(value, bool) and self.type != "boolean":
            return f"expected {self.type}, got bool"
        if not isinstance(value, JSON_TYPES[self.type]):
            return f"expected {self.type}, got {type(value).__name__}"
        if self.enum and value not in self.enum:
            return f"must be one of: {', '.join(map(str, self.enum))}"
        return None


@dataclass
class ToolDefinition:
    """Name, purpose and parameters of a callable tool."""

    name: str
    description: str
    parameters: list[ToolParameter] = field(default_factory=list)

    @property
    def required_names(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def parameter(self, name: str) -> Optional[ToolParameter]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def check_arguments(self, arguments: dict[str, Any]) -> list[tuple[str, str]]:
        """List every problem with a call's arguments.

        Returns:
            (parameter, reason) pairs: missing parameters first, then the
            given arguments in order. Empty when the call is valid.
        """
        problems = [
            (name, "missing required parameter")
            for name in self.required_names
            if name not in arguments
        ]
        for name, value in arguments.items():
            param = self.parameter(name)
            if param is None:
                problems.append((name, "unknown parameter"))
                continue
            reason = param.check(value)
            if reason:
                problems.append((name, reason))
        return problems

    def json_schema(self) -> dict[str, Any]:
        """JSON Schema object for the whole argument set."""
        schema: dict[str, Any] = {
            "type": "object",
            "properties": {p.name: p.schema() for p in self.parameters},
            "additionalProperties": False,
        }
        if self.required_names:
            schema["required"] = self.required_names
        return schema

    def to_openai(self) -> dict[str, Any]:
        """Chat completions ``tools`` entry for this definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }


def tools_to_openai(tools: list[ToolDefinition]) -> list[dict[str, Any]]:
    return [tool.to_openai() for tool in tools]
