"""Shared fixtures: a recording response sink and a small offline tool catalog."""

import json
from typing import Any, Dict, List, Tuple

import pytest

from common.config import Config, ServerInfoConfig
from opencti_mcp.errors import OpenCTIError
from opencti_mcp.session import SessionEngine
from opencti_mcp.tool_registry import (
    Tool,
    ToolHandler,
    ToolParameter,
    ToolParameterType,
    ToolRegistry,
)
from opencti_mcp.transport import ResponseSink


class RecordingSink(ResponseSink):
    """Records every committed write; rejects a second one like a real sink."""

    def __init__(self) -> None:
        self.writes: List[Tuple[str, Any, int]] = []

    @property
    def headers_sent(self) -> bool:
        return bool(self.writes)

    def write_json(self, payload: Dict[str, Any], status_code: int = 200) -> None:
        self._ensure_unsent()
        json.dumps(payload, allow_nan=False)
        self.writes.append(("json", payload, status_code))

    def write_no_content(self) -> None:
        self._ensure_unsent()
        self.writes.append(("no_content", None, 204))

    def write_text(self, text: str, status_code: int = 500) -> None:
        self._ensure_unsent()
        self.writes.append(("text", text, status_code))

    @property
    def only(self) -> Tuple[str, Any, int]:
        assert len(self.writes) == 1, self.writes
        return self.writes[0]

    def _ensure_unsent(self) -> None:
        if self.writes:
            raise RuntimeError("Response already written")


class EchoTool(ToolHandler):
    def get_tool_definition(self) -> Tool:
        return Tool(
            name="echo",
            description="Echo the given text back",
            parameters=[
                ToolParameter(
                    name="text",
                    type=ToolParameterType.STRING,
                    description="Text to echo",
                    required=True,
                ),
                ToolParameter(
                    name="repeat",
                    type=ToolParameterType.INTEGER,
                    description="How many times",
                    default=1,
                    minimum=1,
                ),
            ],
        )

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {"echo": arguments["text"] * arguments.get("repeat", 1), "note": None}


class UpstreamFailureTool(ToolHandler):
    def get_tool_definition(self) -> Tool:
        return Tool(name="broken", description="Always fails upstream")

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        raise OpenCTIError("OpenCTI API error: 502 Bad Gateway")


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def server_info() -> ServerInfoConfig:
    return ServerInfoConfig(name="opencti-server", version="0.1.0", protocol_version="2025-06-18")


@pytest.fixture
def test_config() -> Config:
    return Config()


@pytest.fixture
def tool_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register_tool_handler(EchoTool())
    registry.register_tool_handler(UpstreamFailureTool())
    return registry


@pytest.fixture
def session(tool_registry: ToolRegistry) -> SessionEngine:
    return SessionEngine(tool_registry)
