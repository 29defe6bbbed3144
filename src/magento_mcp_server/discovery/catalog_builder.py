"""Convert a Swagger schema into MCP tools plus invocation metadata."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import structlog
from mcp.types import Tool

from ..client import ToolNameCollisionError

logger = structlog.get_logger(__name__)

ACCEPTED_METHODS: frozenset[str] = frozenset({"get", "post", "put", "delete", "patch"})

_TYPE_MAP: dict[str, str] = {
    "integer": "integer",
    "int": "integer",
    "number": "number",
    "float": "number",
    "boolean": "boolean",
    "bool": "boolean",
    "array": "array",
    "object": "object",
}

_API_PREFIX_RE = re.compile(r"^/rest(/\w+)?/V\d+/")
_PLACEHOLDER_RE = re.compile(r"\{[^}]+\}")
_PATH_PARAM_RE = re.compile(r"\{(\w+)\}")


@dataclass(frozen=True)
class ToolMetadata:
    """How a generated tool maps back onto an HTTP call."""

    path: str  # /rest/V1/products/{sku}
    method: str  # GET, POST, …
    path_params: tuple[str, ...]


# ----------------------------------------------------------------------
# Pure helpers
# ----------------------------------------------------------------------


def derive_tool_name(path: str, method: str) -> str:
    """Build the tool name for one operation.

    ``("/rest/V1/customers/{id}/orders", "post")`` → ``post_customers_orders``
    """
    path = _API_PREFIX_RE.sub("", path)
    path = path.strip("/")

    path = _PLACEHOLDER_RE.sub("", path)
    path = re.sub(r"/+", "/", path.strip("/"))

    name = path.replace("/", "_")
    name = re.sub(r"[^a-zA-Z0-9_]", "", name)
    name = re.sub(r"_+", "_", name.strip("_"))

    return f"{method.lower()}_{name.lower()}"


def extract_path_params(path: str) -> list[str]:
    """Return distinct ``{name}`` placeholders in order of first appearance."""
    return list(dict.fromkeys(_PATH_PARAM_RE.findall(path)))


def map_swagger_type(swagger_type: str | None) -> str:
    if not isinstance(swagger_type, str):
        return "string"
    return _TYPE_MAP.get(swagger_type, "string")


# ----------------------------------------------------------------------
# Builder
# ----------------------------------------------------------------------


class ToolCatalogBuilder:
    """Turns schema operations into ``Tool`` descriptors."""

    def __init__(self, strict_names: bool = False):
        self.strict_names = strict_names

    def build(
        self, schema: dict[str, Any]
    ) -> tuple[list[Tool], dict[str, ToolMetadata]]:
        tools: dict[str, Tool] = {}
        metadata: dict[str, ToolMetadata] = {}

        for path, path_item in (schema.get("paths") or {}).items():
            if not isinstance(path_item, dict):
                continue
            for method, operation in path_item.items():
                method = method.lower()
                if method not in ACCEPTED_METHODS:
                    continue
                if not isinstance(operation, dict):
                    operation = {}

                tool_name = derive_tool_name(path, method)
                path_params = extract_path_params(path)

                if tool_name in metadata:
                    self._on_collision(tool_name, metadata[tool_name], path, method)

                # Assigning to an existing key keeps its original position
                tools[tool_name] = Tool(
                    name=tool_name,
                    description=self._describe(operation, method, path),
                    inputSchema=self._build_input_schema(operation, path_params),
                )
                metadata[tool_name] = ToolMetadata(
                    path=path,
                    method=method.upper(),
                    path_params=tuple(path_params),
                )

        logger.info("Generated MCP tools from Swagger schema", tool_count=len(tools))
        return list(tools.values()), metadata

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _on_collision(
        self, tool_name: str, previous: ToolMetadata, path: str, method: str
    ) -> None:
        if self.strict_names:
            raise ToolNameCollisionError(
                f"Tool name {tool_name!r} generated for both "
                f"{previous.method} {previous.path} and {method.upper()} {path}"
            )
        logger.warning(
            "Tool name collision, later operation wins",
            tool=tool_name,
            replaced_path=previous.path,
            path=path,
        )

    @staticmethod
    def _describe(operation: dict[str, Any], method: str, path: str) -> str:
        return (
            operation.get("summary")
            or operation.get("description")
            or f"{method} {path}"
        )

    @staticmethod
    def _build_input_schema(
        operation: dict[str, Any], path_params: list[str]
    ) -> dict[str, Any]:
        properties: dict[str, Any] = {}
        required: list[str] = []

        for name in path_params:
            properties[name] = {
                "type": "string",
                "description": f"Path parameter: {name}",
            }
            required.append(name)

        for param in operation.get("parameters") or []:
            if not isinstance(param, dict):
                continue
            name = param.get("name", "")
            if not name or name in path_params:
                continue

            schema = param.get("schema")
            param_type = (
                schema.get("type") if isinstance(schema, dict) else None
            ) or param.get("type")
            properties[name] = {
                "type": map_swagger_type(param_type),
                "description": param.get("description") or "",
            }
            if param.get("required", False) and name not in required:
                required.append(name)

        # properties stays a dict even when empty so it encodes as {}
        return {
            "type": "object",
            "properties": properties,
            "required": required,
        }
