"""Locate and fetch the store's Swagger schema."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ..client import MagentoClient, SchemaDisabledError, SchemaUnavailableError
from .route_table import JsonRouteTable, RouteTable, build_schema_from_routes

logger = structlog.get_logger(__name__)

# Tried in order against the store base URL
DISCOVERY_PATHS: tuple[str, ...] = (
    "/rest/default/schema?services=all",
    "/rest/all/schema?services=all",
    "/rest/default/swagger",
    "/rest/all/swagger",
)


class SchemaDiscoverer:
    """Fetches the Swagger schema, falling back to the reflected route table."""

    def __init__(self, client: MagentoClient, route_table: RouteTable | None = None):
        self.client = client
        self.route_table = route_table
        self.last_schema: dict[str, Any] | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def discover(self) -> dict[str, Any]:
        config = self.client.config
        if not config.swagger_enabled:
            raise SchemaDisabledError(
                "Swagger is not enabled. Run: bin/magento config:set "
                "webapi/swagger/enable 1 (and set MAGENTO_SWAGGER_ENABLED=1)"
            )

        for path in DISCOVERY_PATHS:
            schema = await self._fetch_candidate(path)
            if schema is not None:
                logger.info(
                    "Swagger schema discovered",
                    path=path,
                    endpoints=len(schema["paths"]),
                )
                self.last_schema = schema
                return schema

        return self._discover_from_routes()

    # ------------------------------------------------------------------
    # Network candidates
    # ------------------------------------------------------------------

    async def _fetch_candidate(self, path: str) -> dict[str, Any] | None:
        config = self.client.config
        timeout = httpx.Timeout(
            config.discovery_timeout, connect=config.discovery_connect_timeout
        )
        try:
            response = await self.client.request(
                "GET",
                path,
                headers={"Accept": "application/json"},
                timeout=timeout,
            )
        except httpx.RequestError as e:
            logger.debug("Schema candidate unreachable", path=path, error=str(e))
            return None

        if not response.is_success:
            logger.debug(
                "Schema candidate rejected", path=path, status_code=response.status_code
            )
            return None

        try:
            schema = response.json()
        except ValueError:
            logger.debug("Schema candidate returned non-JSON body", path=path)
            return None

        if not _has_paths(schema):
            logger.debug("Schema candidate has no paths", path=path)
            return None
        return schema

    # ------------------------------------------------------------------
    # Route table fallback
    # ------------------------------------------------------------------

    def _resolve_route_table(self) -> RouteTable | None:
        if self.route_table is not None:
            return self.route_table
        routes_file = self.client.config.routes_file
        if routes_file is not None:
            return JsonRouteTable(routes_file)
        return None

    def _discover_from_routes(self) -> dict[str, Any]:
        route_table = self._resolve_route_table()
        if route_table is None:
            logger.warning("No route table available for schema fallback")
        else:
            try:
                schema = build_schema_from_routes(
                    route_table(), api_root=self.client.config.api_root
                )
            except (OSError, ValueError) as e:
                logger.warning(
                    "Failed to discover Swagger via route table", error=str(e)
                )
            else:
                if schema["paths"]:
                    logger.info(
                        "Swagger schema discovered via route table",
                        endpoints=len(schema["paths"]),
                    )
                    self.last_schema = schema
                    return schema

        raise SchemaUnavailableError(
            "Swagger schema not found. Check Magento API configuration."
        )


def _has_paths(schema: Any) -> bool:
    if not isinstance(schema, dict):
        return False
    paths = schema.get("paths")
    return isinstance(paths, dict) and len(paths) > 0
