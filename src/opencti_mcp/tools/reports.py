"""Report tools."""

from typing import Any, Dict

from ..queries import GET_REPORT_TYPES_QUERY, GET_REPORTS_BY_FILTERS_QUERY
from ..tool_registry import ToolParameter, ToolParameterType
from .base import GraphQLToolHandler, pagination_parameters, pagination_variables, require


class GetReportTypesTool(GraphQLToolHandler):
    name = "get_report_types"
    description = "Get all available report types from OpenCTI"
    query = GET_REPORT_TYPES_QUERY


class GetReportsByFiltersTool(GraphQLToolHandler):
    """Reports matching a FilterGroup, e.g. containing Germany AND the Health sector."""

    name = "get_reports_by_filters"
    description = (
        "Get reports by dynamic filters (sectors, countries, regions) with AND/OR logic. "
        'Supports complex queries like "reports containing Germany AND Health sector" or '
        '"reports containing Germany OR Health sector"'
    )
    query = GET_REPORTS_BY_FILTERS_QUERY
    parameters = [
        ToolParameter(
            name="filters",
            type=ToolParameterType.OBJECT,
            description=(
                "FilterGroup object with mode (and/or) and filters array. Example: "
                '{mode: "and", filters: [{key: "objects", values: ["id1", "id2"], operator: "eq"}], '
                "filterGroups: []}"
            ),
            required=True,
        ),
        *pagination_parameters("reports", "published", "published, created"),
    ]

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        filters = require(arguments, "filters", "Filters")
        return {**pagination_variables(arguments, "published"), "filters": filters}
