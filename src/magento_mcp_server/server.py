"""Magento MCP Server — dynamic tool discovery from the store's Swagger schema."""

import asyncio
import json
import logging
import sys
from typing import Any, Dict, Optional

import structlog
from mcp import types
from mcp.server import Server
from mcp.server.models import InitializationOptions
from mcp.server.stdio import stdio_server
from mcp.types import Tool

from . import __version__
from .bridge import SwaggerBridge
from .client import MagentoConfig, MagentoError, UnknownToolError
from .discovery.meta_tools import META_TOOL_NAMES, MetaTools
from .discovery.route_table import RouteTable

logger = structlog.get_logger(__name__)

SERVER_NAME = "magento-mcp-server"


class MagentoMCPServer:
    """MCP server advertising every Magento REST operation as a tool."""

    def __init__(
        self,
        config: Optional[MagentoConfig] = None,
        route_table: Optional[RouteTable] = None,
    ):
        self.config = config or MagentoConfig()
        self.server = Server(SERVER_NAME)
        self.bridge = SwaggerBridge(self.config, route_table=route_table)
        self.meta_tools = MetaTools(self.bridge)

        self._register_handlers()

    # ------------------------------------------------------------------
    # MCP handlers
    # ------------------------------------------------------------------

    async def handle_list_tools(self) -> list[Tool]:
        tools = self.meta_tools.get_tools() + await self.bridge.list_tools()
        logger.info("list_tools", count=len(tools))
        return tools

    async def handle_call_tool(
        self, name: str, arguments: Optional[Dict[str, Any]]
    ) -> list[types.TextContent]:
        arguments = arguments or {}
        try:
            logger.info("call_tool", tool=name)

            if name in META_TOOL_NAMES:
                text = await self.meta_tools.call_tool(name, arguments)
                if name == "refresh_tools":
                    await self._notify_tools_changed()
                return [types.TextContent(type="text", text=text)]

            result = await self.bridge.call_tool(name, arguments)
            text = json.dumps(result, indent=2, default=str)
            return [types.TextContent(type="text", text=text)]

        except UnknownToolError:
            logger.warning("Unknown tool requested", tool=name)
            return [types.TextContent(type="text", text=f"Unknown tool: {name}")]
        except MagentoError as e:
            logger.error("Magento API error", error=str(e), tool=name)
            return [types.TextContent(type="text", text=f"Magento API error: {e}")]

    async def _notify_tools_changed(self) -> None:
        try:
            session = self.server.request_context.session
        except LookupError:
            # Called outside an MCP request, nobody to notify
            return
        await session.send_tool_list_changed()

    def _register_handlers(self) -> None:
        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return await self.handle_list_tools()

        @self.server.call_tool()
        async def call_tool(
            name: str, arguments: Dict[str, Any]
        ) -> list[types.TextContent]:
            return await self.handle_call_tool(name, arguments)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def start(self) -> int:
        """Build the tool catalog up front. Returns the number of tools."""
        await self.bridge.ensure_catalog()
        return self.bridge.tool_count

    async def run(self) -> None:
        logger.info("Starting Magento MCP server")
        try:
            async with stdio_server() as (read_stream, write_stream):
                await self.server.run(
                    read_stream,
                    write_stream,
                    InitializationOptions(
                        server_name=SERVER_NAME,
                        server_version=__version__,
                        capabilities=types.ServerCapabilities(
                            tools=types.ToolsCapability(listChanged=True),
                        ),
                    ),
                )
        finally:
            await self.bridge.close()


# ------------------------------------------------------------------
# Entry points
# ------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog once; later calls leave the setup untouched."""
    if structlog.is_configured():
        return

    # stdout carries the MCP stdio transport
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level.upper())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


async def async_main() -> None:
    server = None
    try:
        config = MagentoConfig()
        configure_logging(config.log_level)
        server = MagentoMCPServer(config)
        count = await server.start()
        sys.stderr.write(f"Magento MCP Server ready ({count} tools)\n")
        await server.run()
    except KeyboardInterrupt:
        logger.info("Server shutdown requested")
    except Exception as e:
        logger.error("Server error", error=str(e), exc_info=True)
        sys.stderr.write(f"Error: {e}\n")
        if server is not None:
            await server.bridge.close()
        sys.exit(1)


def main() -> None:
    """Synchronous entry point for console script."""
    asyncio.run(async_main())


if __name__ == "__main__":
    main()
