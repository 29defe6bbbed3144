"""Infrastructure tools that are NOT auto-discovered."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from mcp.types import Tool

from ..models.schemas import ConfigurationStatusResponse

if TYPE_CHECKING:
    from ..bridge import SwaggerBridge

_MASK = "***MASKED***"
_SECRET_FIELDS = {"access_token"}

# ─── Tool definitions ────────────────────────────────────────────────

# Generated tools always start with an HTTP verb, so these names cannot clash.
META_TOOL_DEFINITIONS: list[Tool] = [
    Tool(
        name="refresh_tools",
        description=(
            "Re-fetch the Swagger schema from Magento and rebuild the tool list. "
            "Use after installing modules or changing API configuration."
        ),
        inputSchema={"type": "object", "properties": {}},
    ),
    Tool(
        name="show_configuration",
        description="Show the current Magento connection settings with secrets masked.",
        inputSchema={"type": "object", "properties": {}},
    ),
]

META_TOOL_NAMES: set[str] = {t.name for t in META_TOOL_DEFINITIONS}


class MetaTools:
    """Handles the curated infrastructure tools."""

    def __init__(self, bridge: SwaggerBridge):
        self._bridge = bridge

    @staticmethod
    def get_tools() -> list[Tool]:
        return list(META_TOOL_DEFINITIONS)

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        """Dispatch a meta tool call. Returns a text string."""
        if name == "refresh_tools":
            return await self._refresh_tools()
        if name == "show_configuration":
            return self._show_configuration()
        raise ValueError(f"Unknown meta tool: {name}")

    # ─── Handlers ──────────────────────────────────────────────────

    async def _refresh_tools(self) -> str:
        count = await self._bridge.refresh()
        return json.dumps({
            "success": True,
            "message": f"Refreshed tool list — {count} tools discovered",
            "tool_count": count,
        })

    def _show_configuration(self) -> str:
        config = self._bridge.config.model_dump(mode="json")
        for field in _SECRET_FIELDS:
            if config.get(field):
                config[field] = _MASK
        status = ConfigurationStatusResponse(
            base_url=self._bridge.client.base_url,
            config=config,
            tool_count=self._bridge.tool_count,
        )
        return status.model_dump_json(indent=2)
