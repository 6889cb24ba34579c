"""Campaign tools."""

from typing import Any, Dict

from ..queries import GET_CAMPAIGNS_BY_FILTERS_QUERY
from ..tool_registry import ToolParameter, ToolParameterType
from .base import GraphQLToolHandler, pagination_parameters, pagination_variables, require


class GetCampaignsByFiltersTool(GraphQLToolHandler):
    name = "get_campaigns_by_filters"
    description = (
        "Get campaigns by dynamic filters (sectors, countries, regions) with AND/OR logic. "
        'Supports complex queries like "campaigns targeting Germany AND Health sector" or '
        '"campaigns targeting Germany OR Health sector"'
    )
    query = GET_CAMPAIGNS_BY_FILTERS_QUERY
    parameters = [
        ToolParameter(
            name="filters",
            type=ToolParameterType.OBJECT,
            description=(
                "FilterGroup object with mode (and/or) and filters array. Example: "
                '{mode: "and", filters: [{key: "regardingOf", operator: "eq", values: '
                '[{key: "relationship_type", values: ["targets"]}, {key: "id", values: ["id1", "id2"]}]}], '
                "filterGroups: []}"
            ),
            required=True,
        ),
        *pagination_parameters("campaigns", "created_at", "created_at, name"),
    ]

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        filters = require(arguments, "filters", "Filters")
        return {**pagination_variables(arguments, "created_at"), "filters": filters}
