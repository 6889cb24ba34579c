"""
OpenCTI tools exposed over MCP.

build_tool_registry() is the single place the catalog is assembled.
"""

from ..opencti_client import OpenCTIClient
from ..tool_registry import ToolRegistry
from .base import GraphQLToolHandler
from .campaigns import GetCampaignsByFiltersTool
from .geography import ListCountriesTool, ListRegionsTool
from .indicators import GetIndicatorsByObjectAndTypeTool, build_indicator_filters
from .malware import GetMalwareByNameTool
from .relationships import (
    StixRelationshipsDistributionTool,
    StixRelationshipsDistributionWithDynamicFiltersTool,
)
from .reports import GetReportsByFiltersTool, GetReportTypesTool
from .sectors import GetSectorByNameTool, ListSectorsTool

TOOL_CLASSES = [
    GetSectorByNameTool,
    ListSectorsTool,
    ListCountriesTool,
    ListRegionsTool,
    GetReportTypesTool,
    GetReportsByFiltersTool,
    GetMalwareByNameTool,
    GetCampaignsByFiltersTool,
    GetIndicatorsByObjectAndTypeTool,
    StixRelationshipsDistributionTool,
    StixRelationshipsDistributionWithDynamicFiltersTool,
]


def build_tool_registry(client: OpenCTIClient) -> ToolRegistry:
    """Create a registry holding every OpenCTI tool bound to one client."""
    registry = ToolRegistry()
    for tool_class in TOOL_CLASSES:
        registry.register_tool_handler(tool_class(client))
    return registry


__all__ = [
    "GraphQLToolHandler",
    "TOOL_CLASSES",
    "build_indicator_filters",
    "build_tool_registry",
]
