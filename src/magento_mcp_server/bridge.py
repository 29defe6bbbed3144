"""Facade tying discovery, catalog building and invocation together."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

import structlog
from mcp.types import Tool

from .client import MagentoClient, MagentoConfig
from .discovery.catalog_builder import ToolCatalogBuilder, ToolMetadata
from .discovery.invoker import ApiInvoker
from .discovery.route_table import RouteTable
from .discovery.schema_discoverer import SchemaDiscoverer

logger = structlog.get_logger(__name__)


class SwaggerBridge:
    """Exposes the store's REST operations as MCP tools.

    The schema is discovered lazily on first use and kept until
    :meth:`refresh` is called.
    """

    def __init__(
        self,
        config: MagentoConfig | None = None,
        route_table: RouteTable | None = None,
    ):
        self.config = config or MagentoConfig()
        self.client = MagentoClient(self.config)
        self.discoverer = SchemaDiscoverer(self.client, route_table=route_table)
        self.builder = ToolCatalogBuilder(strict_names=self.config.strict_tool_names)
        self.invoker = ApiInvoker(self.client, self.get_tool_metadata)

        self.schema: dict[str, Any] | None = None
        self._tools: list[Tool] = []
        self._metadata: dict[str, ToolMetadata] = {}
        self._built = False
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def ensure_catalog(self) -> None:
        if self._built:
            return
        async with self._lock:
            if not self._built:
                await self._build()

    async def refresh(self) -> int:
        """Re-discover the schema and rebuild the catalog. Returns tool count."""
        async with self._lock:
            await self._build()
        return self.tool_count

    async def _build(self) -> None:
        schema = await self.discoverer.discover()
        tools, metadata = self.builder.build(schema)
        self.schema = schema
        self._tools = tools
        self._metadata = metadata
        self._built = True
        logger.info("Tool catalog built", tool_count=len(tools))

    # ------------------------------------------------------------------
    # Registration surface
    # ------------------------------------------------------------------

    async def list_tools(self) -> list[Tool]:
        await self.ensure_catalog()
        return list(self._tools)

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None) -> Any:
        await self.ensure_catalog()
        return await self.invoker.invoke(name, arguments)

    def get_tool_metadata(self, name: str) -> ToolMetadata | None:
        return self._metadata.get(name)

    @property
    def tool_count(self) -> int:
        return len(self._tools)

    async def close(self) -> None:
        await self.client.close()
