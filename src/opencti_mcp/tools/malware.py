"""Malware search tool."""

from typing import Any, Dict

from ..queries import GET_MALWARE_BY_NAME_QUERY
from ..tool_registry import ToolParameter, ToolParameterType
from .base import GraphQLToolHandler, require


class GetMalwareByNameTool(GraphQLToolHandler):
    name = "get_malware_by_name"
    description = "Search for malware by name in OpenCTI"
    query = GET_MALWARE_BY_NAME_QUERY
    parameters = [
        ToolParameter(
            name="search",
            type=ToolParameterType.STRING,
            description="Malware name or search term",
            required=True,
        ),
    ]

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {"search": require(arguments, "search", "Search term")}
