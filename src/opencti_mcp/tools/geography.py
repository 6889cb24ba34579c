"""Country and region listing tools."""

from typing import Any, Dict

from ..queries import LIST_COUNTRIES_QUERY, LIST_REGIONS_QUERY
from ..tool_registry import ToolParameter, ToolParameterType
from .base import GraphQLToolHandler


class ListCountriesTool(GraphQLToolHandler):
    name = "list_countries"
    description = (
        'List all available countries, optionally filtered by search term (e.g., "France", "Germany")'
    )
    query = LIST_COUNTRIES_QUERY
    parameters = [
        ToolParameter(
            name="search",
            type=ToolParameterType.STRING,
            description='Optional search term to filter countries (e.g., "France", "United States")',
        ),
    ]

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        # An empty search means "everything"
        return {"search": arguments.get("search") or None}


class ListRegionsTool(GraphQLToolHandler):
    name = "list_regions"
    description = (
        'List all available regions, optionally filtered by search term (e.g., "Europe", "Asia")'
    )
    query = LIST_REGIONS_QUERY
    parameters = [
        ToolParameter(
            name="search",
            type=ToolParameterType.STRING,
            description='Optional search term to filter regions (e.g., "Europe", "Middle East")',
        ),
    ]

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {"search": arguments.get("search") or None}
