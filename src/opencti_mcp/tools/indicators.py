"""Indicator hunting tool."""

from typing import Any, Dict

from ..queries import GET_INDICATORS_BY_OBJECT_AND_TYPE_QUERY
from ..tool_registry import ToolParameter, ToolParameterType
from .base import GraphQLToolHandler, pagination_parameters, pagination_variables, require


def build_indicator_filters(object_id: str, indicator_type: str) -> Dict[str, Any]:
    """
    FilterGroup for valid indicators of one observable type that indicate an object.

    entity_type = Indicator AND (indicates -> object_id AND main observable
    type = indicator_type AND not revoked)
    """
    return {
        "mode": "and",
        "filters": [
            {"key": "entity_type", "values": ["Indicator"], "operator": "eq", "mode": "or"},
        ],
        "filterGroups": [
            {
                "mode": "and",
                "filters": [
                    {
                        "key": "regardingOf",
                        "operator": "eq",
                        "values": [
                            {"key": "relationship_type", "values": ["indicates"]},
                            {"key": "id", "values": [object_id]},
                        ],
                        "mode": "or",
                    },
                    {
                        "key": "x_opencti_main_observable_type",
                        "operator": "eq",
                        "values": [indicator_type],
                        "mode": "or",
                    },
                    {"key": "revoked", "operator": "eq", "values": ["false"], "mode": "or"},
                ],
                "filterGroups": [],
            },
        ],
    }


class GetIndicatorsByObjectAndTypeTool(GraphQLToolHandler):
    name = "get_indicators_by_object_and_type"
    description = (
        "Retrieve the latest valid indicators for a given object "
        "(malware, campaign, or intrusion set) and indicator type"
    )
    query = GET_INDICATORS_BY_OBJECT_AND_TYPE_QUERY
    parameters = [
        ToolParameter(
            name="objectId",
            type=ToolParameterType.STRING,
            description="The ID of the object (malware, campaign, or intrusion set)",
            required=True,
        ),
        ToolParameter(
            name="indicatorType",
            type=ToolParameterType.STRING,
            description=(
                "The type of indicators (e.g., IPv4-Addr, IPv6-Addr, Domain-Name, URL, "
                "File-MD5, File-SHA-256)"
            ),
            required=True,
        ),
        *pagination_parameters("indicators", "created", "created, valid_from"),
    ]

    def build_variables(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        object_id = require(arguments, "objectId", "Object ID")
        indicator_type = require(arguments, "indicatorType", "Indicator type")
        return {
            **pagination_variables(arguments, "created"),
            "filters": build_indicator_filters(object_id, indicator_type),
        }
