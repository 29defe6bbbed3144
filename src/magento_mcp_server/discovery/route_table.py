"""Reflected webapi route table used when the Swagger endpoints are unreachable."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator

import structlog
from pydantic import BaseModel, Field

logger = structlog.get_logger(__name__)

_ROUTE_PARAM = re.compile(r":(\w+)")


class RouteDefinition(BaseModel):
    """One registered REST route. Path parameters are written ``{name}``."""

    path: str
    method: str
    description: str | None = None
    service_class: str | None = None
    service_method: str | None = None


# Any zero-argument callable producing route definitions
RouteTable = Callable[[], Iterable[RouteDefinition]]


class JsonRouteTable:
    """Reads a dump of the store's webapi routes.

    The file uses the store's own layout::

        {"/V1/products/:sku": {"GET": {"service": {"class": "...", "method": "get"}}}}

    ``:name`` segments are rewritten to ``{name}``.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def __call__(self) -> Iterator[RouteDefinition]:
        with open(self.path, encoding="utf-8") as f:
            routes = json.load(f)
        if not isinstance(routes, dict):
            raise ValueError(f"Route table must be a JSON object: {self.path}")
        # Full config dumps nest the table under "routes"
        if isinstance(routes.get("routes"), dict):
            routes = routes["routes"]

        for route_path, methods in routes.items():
            if not isinstance(methods, dict):
                continue
            for http_method, route_data in methods.items():
                if not isinstance(route_data, dict):
                    continue
                yield _route_from_entry(route_path, http_method, route_data)


def _route_from_entry(
    route_path: str, http_method: str, route_data: dict[str, Any]
) -> RouteDefinition:
    service = route_data.get("service") or {}
    if not isinstance(service, dict):
        service = {}
    return RouteDefinition(
        path=_ROUTE_PARAM.sub(r"{\1}", route_path),
        method=http_method,
        description=route_data.get("description") or None,
        service_class=service.get("class") or None,
        service_method=service.get("method") or None,
    )


def build_schema_from_routes(
    routes: Iterable[RouteDefinition], api_root: str = "rest"
) -> dict[str, Any]:
    """Build a minimal OpenAPI document from reflected routes."""
    root = "/" + api_root.strip("/")
    paths: dict[str, dict[str, Any]] = {}
    for route in routes:
        method = route.method.lower()
        path = root + "/" + route.path.lstrip("/")
        paths.setdefault(path, {})[method] = {
            "summary": route.description or route.service_class or route.path,
            "operationId": f"{route.service_class or 'api'}_{method}",
            "parameters": [],
        }

    return {
        "openapi": "3.0.0",
        "info": {"title": "Magento 2 REST API", "version": "1.0.0"},
        "paths": paths,
    }
