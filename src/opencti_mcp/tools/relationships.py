"""STIX relationship distribution tools."""

from typing import Any, Dict, List

from ..queries import STIX_RELATIONSHIPS_DISTRIBUTION_QUERY
from ..tool_registry import ToolParameter, ToolParameterType
from .base import GraphQLToolHandler, require

DEFAULT_DISTRIBUTION_LIMIT = 10
STATS_OPERATIONS = ["count", "sum", "avg", "min", "max"]


def _string_list(name: str, description: str) -> ToolParameter:
    return ToolParameter(
        name=name,
        type=ToolParameterType.ARRAY,
        description=description,
        items=ToolParameter(name="item", type=ToolParameterType.STRING, description=description),
    )


DISTRIBUTION_PARAMETERS: List[ToolParameter] = [
    ToolParameter(
        name="field",
        type=ToolParameterType.STRING,
        description='Field to group relationships by (e.g., "internal_id", "entity_type")',
        required=True,
    ),
    ToolParameter(
        name="operation",
        type=ToolParameterType.STRING,
        description='Statistical operation to perform (e.g., "count")',
        required=True,
        enum=STATS_OPERATIONS,
    ),
    ToolParameter(
        name="startDate",
        type=ToolParameterType.STRING,
        description="Start date for filtering relationships (ISO 8601 format)",
    ),
    ToolParameter(
        name="endDate",
        type=ToolParameterType.STRING,
        description="End date for filtering relationships (ISO 8601 format)",
    ),
    ToolParameter(
        name="dateAttribute",
        type=ToolParameterType.STRING,
        description='Date attribute to filter on (e.g., "created_at", "updated_at")',
    ),
    ToolParameter(
        name="isTo",
        type=ToolParameterType.BOOLEAN,
        description='Filter relationships by direction (true for "to", false for "from")',
    ),
    ToolParameter(
        name="limit",
        type=ToolParameterType.INTEGER,
        description="Maximum number of results to retrieve",
        default=DEFAULT_DISTRIBUTION_LIMIT,
        minimum=1,
    ),
    _string_list("fromOrToId", "Filter by entity IDs (either source or destination)"),
    _string_list("elementWithTargetTypes", "Filter by target entity types"),
    _string_list("fromId", "Filter by source entity IDs"),
    ToolParameter(
        name="fromRole", type=ToolParameterType.STRING, description="Filter by source entity role"
    ),
    _string_list("fromTypes", "Filter by source entity types"),
    _string_list("toId", "Filter by destination entity IDs"),
    ToolParameter(
        name="toRole", type=ToolParameterType.STRING, description="Filter by destination entity role"
    ),
    _string_list("toTypes", "Filter by destination entity types"),
    _string_list("relationship_type", 'Filter by relationship types (e.g., "targets", "uses")'),
    ToolParameter(
        name="confidences",
        type=ToolParameterType.ARRAY,
        description="Filter by confidence levels",
        items=ToolParameter(
            name="item", type=ToolParameterType.INTEGER, description="Confidence level"
        ),
    ),
    ToolParameter(
        name="search", type=ToolParameterType.STRING, description="Free text search on relationships"
    ),
    ToolParameter(
        name="filters",
        type=ToolParameterType.OBJECT,
        description="FilterGroup object for complex filtering on the relationships themselves",
    ),
]

# Optional arguments forwarded to GraphQL under the same name when given
PASSTHROUGH_VARIABLES = [
    param.name
    for param in DISTRIBUTION_PARAMETERS
    if param.name not in ("field", "operation", "limit")
]


class StixRelationshipsDistributionTool(GraphQLToolHandler):
    name = "get_stix_relationships_distribution"
    description = (
        "Get STIX relationships distribution with basic filters. Use this tool for simple "
        "relationship searches without complex filters on the source or destination of "
        "relationships. Example use-case: get the malwares most used by a specific intrusion "
        "set, or get the intrusion sets that target the most a sector. For complex "
        "source/destination filters, use get_stix_relationships_distribution_with_dynamic_filters "
        "instead."
    )
    query = STIX_RELATIONSHIPS_DISTRIBUTION_QUERY
    parameters = DISTRIBUTION_PARAMETERS

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        variables = {
            "field": require(arguments, "field", "Field"),
            "operation": require(arguments, "operation", "Operation"),
            "limit": arguments.get("limit") or DEFAULT_DISTRIBUTION_LIMIT,
        }
        for key in PASSTHROUGH_VARIABLES:
            if arguments.get(key) is not None:
                variables[key] = arguments[key]

        variables.update(self.dynamic_filters(arguments))
        return variables

    def dynamic_filters(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        # Source/destination pre-queries are reserved for the dynamic variant
        return {"dynamicFrom": None, "dynamicTo": None}


class StixRelationshipsDistributionWithDynamicFiltersTool(StixRelationshipsDistributionTool):
    name = "get_stix_relationships_distribution_with_dynamic_filters"
    description = (
        "Get STIX relationships distribution with dynamic filters on source and destination "
        "entities. WARNING: dynamicFrom and dynamicTo are pre-queries that can match up to "
        "5,000 entities each, so they must be precise queries to avoid performance issues. "
        "Use this tool only when you need complex filters on the source (dynamicFrom) or "
        "destination (dynamicTo) of relationships. Example use-case: \"What are the chinese "
        'intrusion sets that target the most the Health sector?"'
    )
    parameters = DISTRIBUTION_PARAMETERS + [
        ToolParameter(
            name="dynamicFrom",
            type=ToolParameterType.OBJECT,
            description=(
                "FilterGroup pre-query selecting the source entities of the relationships "
                "(matches up to 5,000 entities)"
            ),
        ),
        ToolParameter(
            name="dynamicTo",
            type=ToolParameterType.OBJECT,
            description=(
                "FilterGroup pre-query selecting the destination entities of the relationships "
                "(matches up to 5,000 entities)"
            ),
        ),
    ]

    def dynamic_filters(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {"dynamicFrom": arguments.get("dynamicFrom"), "dynamicTo": arguments.get("dynamicTo")}
