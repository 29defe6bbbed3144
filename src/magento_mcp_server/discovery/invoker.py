"""Execute generated tools against the Magento REST API."""

from __future__ import annotations

from typing import Any, Callable, Mapping
from urllib.parse import quote

import httpx
import structlog

from ..client import MagentoClient, UnknownToolError
from ..models.schemas import CONNECTION_REFUSED_DETAIL, ErrorResult
from .catalog_builder import ToolMetadata

logger = structlog.get_logger(__name__)

_JSON_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class ApiInvoker:
    """Build the HTTP request for a tool call and normalize the outcome.

    Once the tool name is known, :meth:`invoke` never raises: transport and
    HTTP failures come back as ``ErrorResult`` dicts.
    """

    def __init__(
        self,
        client: MagentoClient,
        lookup: Callable[[str], ToolMetadata | None],
    ):
        self.client = client
        self._lookup = lookup

    async def invoke(self, tool_name: str, arguments: Mapping[str, Any] | None) -> Any:
        metadata = self._lookup(tool_name)
        if metadata is None:
            raise UnknownToolError(f"No metadata for tool: {tool_name}")

        remaining = dict(arguments or {})
        path = self._substitute_path_params(metadata, remaining)

        kwargs: dict[str, Any] = {"headers": dict(_JSON_HEADERS)}
        if metadata.method == "GET":
            kwargs["params"] = _flatten_query(remaining)
        else:
            kwargs["json"] = remaining

        logger.info("Invoking tool", tool=tool_name, method=metadata.method, path=path)

        try:
            response = await self.client.request(metadata.method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("Request error", error=str(e), tool=tool_name, path=path)
            return ErrorResult(
                error=str(e) or type(e).__name__,
                detail=CONNECTION_REFUSED_DETAIL,
                status=0,
            ).model_dump()

        if not response.is_success:
            return ErrorResult(
                error=(
                    f"{metadata.method} {path} failed: "
                    f"{response.status_code} {response.reason_phrase}"
                ),
                detail=_parse_json(response),
                status=response.status_code,
            ).model_dump()

        result = _parse_json(response)
        return {} if result is None else result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _substitute_path_params(metadata: ToolMetadata, arguments: dict[str, Any]) -> str:
        """Fill ``{param}`` placeholders, consuming the used arguments.

        Values are percent-encoded as a single segment. Missing or ``None``
        parameters leave their placeholder in the path.
        """
        path = metadata.path
        for name in metadata.path_params:
            value = arguments.pop(name, None)
            if value is None:
                logger.warning("Path parameter not supplied", param=name, path=path)
                continue
            path = path.replace("{" + name + "}", quote(_to_text(value), safe=""))
        return path


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _parse_json(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _flatten_query(arguments: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Flatten nested arguments into bracketed query keys.

    ``{"searchCriteria": {"pageSize": 10}}`` → ``[("searchCriteria[pageSize]", "10")]``
    """
    pairs: list[tuple[str, str]] = []

    def _walk(key: str, value: Any) -> None:
        if value is None:
            return
        if isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                _walk(f"{key}[{sub_key}]", sub_value)
        elif isinstance(value, (list, tuple)):
            for index, item in enumerate(value):
                _walk(f"{key}[{index}]", item)
        elif isinstance(value, bool):
            pairs.append((key, "1" if value else "0"))
        else:
            pairs.append((key, str(value)))

    for key, value in arguments.items():
        _walk(str(key), value)
    return pairs
