"""Sector lookup tools."""

from typing import Any, Dict

from ..queries import GET_SECTORS_QUERY, LIST_SECTORS_QUERY
from ..tool_registry import ToolParameter, ToolParameterType
from .base import GraphQLToolHandler, require


class GetSectorByNameTool(GraphQLToolHandler):
    name = "get_sector_by_name"
    description = "Retrieves the sectors corresponding to a given name. Returns their ID"
    query = GET_SECTORS_QUERY
    parameters = [
        ToolParameter(
            name="name",
            type=ToolParameterType.STRING,
            description="The name of the sector that is being searched",
            required=True,
        ),
    ]

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {"search": require(arguments, "name", "Sector name")}


class ListSectorsTool(GraphQLToolHandler):
    name = "list_sectors"
    description = "List all available sectors"
    query = LIST_SECTORS_QUERY
