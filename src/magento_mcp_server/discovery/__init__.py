"""Discovery module for Swagger-based tool generation."""

from .catalog_builder import ToolCatalogBuilder, ToolMetadata, derive_tool_name
from .invoker import ApiInvoker
from .meta_tools import MetaTools
from .route_table import JsonRouteTable, RouteDefinition
from .schema_discoverer import SchemaDiscoverer

__all__ = [
    "ApiInvoker",
    "JsonRouteTable",
    "MetaTools",
    "RouteDefinition",
    "SchemaDiscoverer",
    "ToolCatalogBuilder",
    "ToolMetadata",
    "derive_tool_name",
]
