"""
Tool Registry for the OpenCTI MCP server

Holds the fixed catalog of tools exposed through tools/list and tools/call.

Key Features:
- Typed parameter definitions rendered to JSON Schema
- Argument validation before any handler runs
- Execution timing per call
"""

import re
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from common.logging import TimedLogger, get_logger
from .errors import InvalidParamsError, MethodNotFoundError

logger = get_logger(__name__)


class ToolParameterType(str, Enum):
    """JSON Schema types accepted for tool parameters."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


class ToolParameter(BaseModel):
    """Single tool parameter definition."""

    name: str
    type: ToolParameterType
    description: str
    required: bool = False
    default: Optional[Any] = None
    enum: Optional[List[Any]] = None
    minimum: Optional[Union[int, float]] = None
    maximum: Optional[Union[int, float]] = None
    pattern: Optional[str] = None  # For string validation
    items: Optional["ToolParameter"] = None  # For array types

    def to_schema(self) -> Dict[str, Any]:
        """Render this parameter as a JSON Schema property."""
        schema: Dict[str, Any] = {"type": self.type.value, "description": self.description}

        if self.enum:
            schema["enum"] = self.enum
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if self.pattern:
            schema["pattern"] = self.pattern
        if self.default is not None:
            schema["default"] = self.default
        if self.type == ToolParameterType.ARRAY and self.items:
            schema["items"] = self.items.to_schema()

        return schema


class Tool(BaseModel):
    """MCP tool definition."""

    name: str
    description: str
    parameters: List[ToolParameter] = Field(default_factory=list)
    category: str = "opencti"

    def input_schema(self) -> Dict[str, Any]:
        """Build the inputSchema advertised by tools/list."""
        properties = {param.name: param.to_schema() for param in self.parameters}
        required = [param.name for param in self.parameters if param.required]
        return {"type": "object", "properties": properties, "required": required}

    def to_mcp(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }


class ToolHandler(ABC):
    """Abstract base class for tool handlers."""

    @abstractmethod
    async def execute(self, arguments: Dict[str, Any]) -> Any:
        """Execute the tool with validated arguments."""
        pass

    @abstractmethod
    def get_tool_definition(self) -> Tool:
        """Get the tool definition for this handler."""
        pass


class ToolRegistry:
    """
    Registry of MCP tools and their handlers.

    Populated once at startup; the catalog does not change afterwards.
    """

    def __init__(self):
        self.tools: Dict[str, Tool] = {}
        self.handlers: Dict[str, ToolHandler] = {}

    def register_tool_handler(self, handler: ToolHandler) -> None:
        """Register a tool with its handler."""
        tool = handler.get_tool_definition()
        if tool.name in self.tools:
            raise ValueError(f"Tool '{tool.name}' is already registered")

        self.tools[tool.name] = tool
        self.handlers[tool.name] = handler

        logger.debug(
            event="tool_registered",
            tool_name=tool.name,
            parameters_count=len(tool.parameters),
            handler_type=type(handler).__name__,
        )

    def list_tools(self) -> List[Tool]:
        """List all registered tools in registration order."""
        return list(self.tools.values())

    def get_tool(self, tool_name: str) -> Optional[Tool]:
        return self.tools.get(tool_name)

    def __len__(self) -> int:
        return len(self.tools)

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any]) -> Any:
        """
        Validate arguments and execute a tool.

        Args:
            tool_name: Name of the tool to execute
            arguments: Arguments to pass to the tool

        Returns:
            Whatever the handler returns

        Raises:
            MethodNotFoundError: If no tool has this name
            InvalidParamsError: If the arguments do not match the tool's parameters
        """
        tool = self.tools.get(tool_name)
        if tool is None:
            raise MethodNotFoundError(f"Unknown tool: {tool_name}")

        validation_error = self._validate_arguments(tool, arguments)
        if validation_error:
            raise InvalidParamsError(f"Argument validation failed: {validation_error}")

        with TimedLogger(logger, "tool_executed", tool_name=tool_name):
            return await self.handlers[tool_name].execute(arguments)

    def _validate_arguments(self, tool: Tool, arguments: Dict[str, Any]) -> Optional[str]:
        """
        Validate tool arguments against parameter definitions.

        Returns:
            None if valid, error message if invalid
        """
        params_by_name = {param.name: param for param in tool.parameters}

        for param in tool.parameters:
            if param.required and param.name not in arguments:
                return f"Required parameter '{param.name}' is missing"

        for param_name, value in arguments.items():
            param_def = params_by_name.get(param_name)
            if param_def is None:
                return f"Unknown parameter '{param_name}'"

            type_error = self._validate_parameter_type(param_def, value)
            if type_error:
                return f"Parameter '{param_name}': {type_error}"

        return None

    def _validate_parameter_type(self, param: ToolParameter, value: Any) -> Optional[str]:
        """
        Validate a single parameter value.

        Returns:
            None if valid, error message if invalid
        """
        if value is None:
            if param.required:
                return "is required but got null"
            return None

        if param.type == ToolParameterType.STRING:
            if not isinstance(value, str):
                return f"expected string, got {type(value).__name__}"

            if param.pattern and not re.match(param.pattern, value):
                return f"does not match pattern {param.pattern}"

        elif param.type in (ToolParameterType.INTEGER, ToolParameterType.NUMBER):
            expected = int if param.type == ToolParameterType.INTEGER else (int, float)
            # bool is an int subclass but never a valid number here
            if isinstance(value, bool) or not isinstance(value, expected):
                return f"expected {param.type.value}, got {type(value).__name__}"

            if param.minimum is not None and value < param.minimum:
                return f"must be >= {param.minimum}"
            if param.maximum is not None and value > param.maximum:
                return f"must be <= {param.maximum}"

        elif param.type == ToolParameterType.BOOLEAN:
            if not isinstance(value, bool):
                return f"expected boolean, got {type(value).__name__}"

        elif param.type == ToolParameterType.ARRAY:
            if not isinstance(value, list):
                return f"expected array, got {type(value).__name__}"

            if param.items:
                for i, item in enumerate(value):
                    item_error = self._validate_parameter_type(param.items, item)
                    if item_error:
                        return f"item {i}: {item_error}"

        elif param.type == ToolParameterType.OBJECT:
            if not isinstance(value, dict):
                return f"expected object, got {type(value).__name__}"

        if param.enum and value not in param.enum:
            return f"must be one of {param.enum}, got {value}"

        return None
