"""
Shared plumbing for OpenCTI tools.

Each tool is one GraphQL document plus a mapping from tool arguments to
query variables. Subclasses declare the definition as class attributes and
override build_variables().
"""

from typing import Any, Dict, List

from common.logging import get_logger
from ..errors import InvalidParamsError
from ..opencti_client import OpenCTIClient
from ..tool_registry import Tool, ToolHandler, ToolParameter, ToolParameterType

logger = get_logger(__name__)

DEFAULT_PAGE_COUNT = 25
ORDER_MODES = ["asc", "desc"]


class GraphQLToolHandler(ToolHandler):
    """A tool that runs one OpenCTI GraphQL query and returns its data unchanged."""

    name: str = ""
    description: str = ""
    query: str = ""
    parameters: List[ToolParameter] = []

    def __init__(self, client: OpenCTIClient):
        self.client = client

    def get_tool_definition(self) -> Tool:
        return Tool(name=self.name, description=self.description, parameters=list(self.parameters))

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        """Map validated tool arguments onto GraphQL variables."""
        return {}

    async def execute(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        variables = self.build_variables(arguments)
        logger.info(event="opencti_query", tool_name=self.name, variables=sorted(variables))
        return await self.client.execute_query(self.query, variables)


def require(arguments: Dict[str, Any], key: str, label: str) -> Any:
    """Return a required argument, rejecting empty values the schema lets through."""
    value = arguments.get(key)
    if value is None or value == "" or value == {}:
        raise InvalidParamsError(f"{label} is required")
    return value


def pagination_parameters(noun: str, default_order_by: str, order_examples: str) -> List[ToolParameter]:
    """count/cursor/orderBy/orderMode parameters shared by the paginated list tools."""
    return [
        ToolParameter(
            name="count",
            type=ToolParameterType.INTEGER,
            description=f"Maximum number of {noun} to retrieve",
            default=DEFAULT_PAGE_COUNT,
            minimum=1,
        ),
        ToolParameter(
            name="cursor",
            type=ToolParameterType.STRING,
            description="Pagination cursor for retrieving next set of results",
        ),
        ToolParameter(
            name="orderBy",
            type=ToolParameterType.STRING,
            description=f"Field to order results by (e.g., {order_examples})",
            default=default_order_by,
        ),
        ToolParameter(
            name="orderMode",
            type=ToolParameterType.STRING,
            description="Order mode: asc or desc",
            default="desc",
            enum=ORDER_MODES,
        ),
    ]


def pagination_variables(arguments: Dict[str, Any], default_order_by: str) -> Dict[str, Any]:
    return {
        "count": arguments.get("count") or DEFAULT_PAGE_COUNT,
        "cursor": arguments.get("cursor"),
        "orderBy": arguments.get("orderBy") or default_order_by,
        "orderMode": arguments.get("orderMode") or "desc",
    }
