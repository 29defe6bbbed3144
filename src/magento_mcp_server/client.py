"""Magento HTTP client shared by schema discovery and tool invocation."""

import ipaddress
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx
import structlog
from pydantic import Field, HttpUrl
from pydantic_settings import BaseSettings

logger = structlog.get_logger(__name__)

# Host suffixes treated as local/test deployments
_LOCAL_SUFFIXES = (".test", ".local")


class MagentoConfig(BaseSettings):
    """Configuration for the Magento MCP server."""

    base_url: HttpUrl = Field(
        default="http://localhost",
        description="Public base URL of the Magento store",
    )
    access_token: Optional[str] = Field(
        default=None, description="Integration access token sent as a Bearer token"
    )
    swagger_enabled: bool = Field(
        default=True, description="Whether the store exposes its Swagger schema"
    )
    api_root: str = Field(default="rest", description="REST API root segment")
    routes_file: Optional[Path] = Field(
        default=None, description="JSON dump of the store's webapi route table"
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    discovery_connect_timeout: float = Field(
        default=2.0, description="Connect timeout per schema candidate"
    )
    discovery_timeout: float = Field(
        default=5.0, description="Total timeout per schema candidate"
    )
    verify_ssl: bool = Field(
        default=False, description="Verify TLS certificates of the store"
    )
    strict_tool_names: bool = Field(
        default=False, description="Fail the build when two operations share a name"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = {"env_prefix": "MAGENTO_", "case_sensitive": False}


class MagentoError(Exception):
    """Base exception for Magento bridge errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SchemaDisabledError(MagentoError):
    """Schema discovery is switched off in the store configuration."""


class SchemaUnavailableError(MagentoError):
    """No discovery source produced a schema with paths."""


class UnknownToolError(MagentoError):
    """A tool name has no invocation metadata."""


class ToolNameCollisionError(MagentoError):
    """Two operations normalize to the same tool name (strict mode only)."""


def _is_local_host(host: str) -> bool:
    host = host.lower()
    if host == "localhost" or host.endswith(_LOCAL_SUFFIXES):
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def resolve_base_url(url: str) -> str:
    """Return the URL used to reach the store.

    HTTPS addresses of local/test hosts are downgraded to plain HTTP so that
    self-signed or HTTP-only development stores stay reachable. This trades
    transport security for convenience and only applies to those hosts.
    """
    url = url.rstrip("/")
    parts = urlsplit(url)
    if parts.scheme == "https" and parts.hostname and _is_local_host(parts.hostname):
        logger.warning("Downgrading local store URL to http", host=parts.hostname)
        return urlunsplit(parts._replace(scheme="http"))
    return url


class MagentoClient:
    """Asynchronous HTTP client for the Magento store."""

    def __init__(self, config: Optional[MagentoConfig] = None):
        self.config = config or MagentoConfig()
        self.base_url = resolve_base_url(str(self.config.base_url))
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self.ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def ensure_client(self) -> httpx.AsyncClient:
        # No await between the check and the assignment, so a single event
        # loop never builds two clients.
        if self.client is None:
            self.client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.config.timeout,
                verify=self.config.verify_ssl,
                follow_redirects=True,
                headers=self._default_headers(),
            )
        return self.client

    def _default_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        return headers

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request relative to the store base URL.

        Transport errors propagate as ``httpx.RequestError``; HTTP error
        statuses are returned to the caller untouched.
        """
        client = self.ensure_client()
        response = await client.request(method, path, **kwargs)
        logger.info(
            "API request",
            method=method,
            path=path,
            status_code=response.status_code,
        )
        return response

    async def close(self) -> None:
        if self.client is not None:
            await self.client.aclose()
            self.client = None
