"""Integration tests: end-to-end list_tools / call_tool with the offline schema."""

import json
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from magento_mcp_server import server as server_module
from magento_mcp_server.client import MagentoConfig
from magento_mcp_server.discovery.meta_tools import META_TOOL_NAMES
from magento_mcp_server.server import MagentoMCPServer, async_main, configure_logging

SCHEMA_URL = "http://shop.test/rest/default/schema?services=all"


@pytest.fixture
async def mcp_server(config):
    srv = MagentoMCPServer(config)
    yield srv
    await srv.bridge.close()


class TestEndToEnd:
    async def test_list_tools_returns_meta_plus_discovered(
        self, httpx_mock, mcp_server, swagger_schema
    ):
        httpx_mock.add_response(url=SCHEMA_URL, json=swagger_schema)

        tools = await mcp_server.handle_list_tools()

        names = [t.name for t in tools]
        assert set(names[: len(META_TOOL_NAMES)]) == META_TOOL_NAMES
        assert "get_products" in names
        assert len(names) == len(set(names))

    async def test_call_discovered_tool(self, httpx_mock, mcp_server, swagger_schema):
        httpx_mock.add_response(url=SCHEMA_URL, json=swagger_schema)
        httpx_mock.add_response(
            url="http://shop.test/rest/default/V1/orders/000000001",
            json={"entity_id": 1, "status": "pending"},
        )

        content = await mcp_server.handle_call_tool("get_orders", {"id": "000000001"})

        assert len(content) == 1
        assert json.loads(content[0].text) == {"entity_id": 1, "status": "pending"}

    async def test_http_failure_is_an_ordinary_result(
        self, httpx_mock, mcp_server, swagger_schema
    ):
        httpx_mock.add_response(url=SCHEMA_URL, json=swagger_schema)
        httpx_mock.add_response(
            url="http://shop.test/rest/default/V1/orders/9",
            status_code=404,
            json={"message": "The entity that was requested doesn't exist."},
        )

        content = await mcp_server.handle_call_tool("get_orders", {"id": 9})

        parsed = json.loads(content[0].text)
        assert parsed["status"] == 404
        assert parsed["detail"]["message"].startswith("The entity")

    async def test_unknown_tool(self, httpx_mock, mcp_server, swagger_schema):
        httpx_mock.add_response(url=SCHEMA_URL, json=swagger_schema)

        content = await mcp_server.handle_call_tool("nonexistent_tool_xyz", {})

        assert content[0].text == "Unknown tool: nonexistent_tool_xyz"

    async def test_call_meta_tool_without_discovery(self, httpx_mock, mcp_server):
        content = await mcp_server.handle_call_tool("show_configuration", None)

        parsed = json.loads(content[0].text)
        assert parsed["base_url"] == "http://shop.test"
        assert httpx_mock.get_requests() == []

    async def test_discovery_error_reported_as_text(self, httpx_mock):
        srv = MagentoMCPServer(
            MagentoConfig(base_url="http://shop.test", swagger_enabled=False)
        )
        content = await srv.handle_call_tool("get_products", {"sku": "x"})
        assert content[0].text.startswith("Magento API error: Swagger is not enabled")


class TestEntryPoint:
    async def test_startup_failure_exits_non_zero(self, monkeypatch, capsys):
        monkeypatch.setenv("MAGENTO_BASE_URL", "http://shop.test")
        monkeypatch.setenv("MAGENTO_SWAGGER_ENABLED", "0")
        monkeypatch.setattr(server_module, "configure_logging", lambda level: None)

        with pytest.raises(SystemExit) as exc_info:
            await async_main()

        assert exc_info.value.code == 1
        assert "Error: Swagger is not enabled" in capsys.readouterr().err

    async def test_startup_reports_tool_count(
        self, monkeypatch, capsys, httpx_mock, swagger_schema
    ):
        monkeypatch.setenv("MAGENTO_BASE_URL", "http://shop.test")
        monkeypatch.setattr(server_module, "configure_logging", lambda level: None)
        httpx_mock.add_response(url=SCHEMA_URL, json=swagger_schema)

        async def fake_run(self):
            await self.bridge.close()

        monkeypatch.setattr(MagentoMCPServer, "run", fake_run)

        await async_main()

        assert "Magento MCP Server ready (9 tools)" in capsys.readouterr().err


class TestToolListNotification:
    async def test_refresh_notifies_session(
        self, monkeypatch, httpx_mock, mcp_server, swagger_schema
    ):
        httpx_mock.add_response(url=SCHEMA_URL, json=swagger_schema)
        session = AsyncMock()
        monkeypatch.setattr(
            type(mcp_server.server),
            "request_context",
            property(lambda self: MagicMock(session=session)),
        )

        content = await mcp_server.handle_call_tool("refresh_tools", {})

        assert json.loads(content[0].text)["success"] is True
        session.send_tool_list_changed.assert_awaited_once()

    async def test_other_tools_do_not_notify(self, monkeypatch, mcp_server):
        session = AsyncMock()
        monkeypatch.setattr(
            type(mcp_server.server),
            "request_context",
            property(lambda self: MagicMock(session=session)),
        )

        await mcp_server.handle_call_tool("show_configuration", {})

        session.send_tool_list_changed.assert_not_awaited()

    async def test_refresh_outside_request(self, httpx_mock, mcp_server, swagger_schema):
        httpx_mock.add_response(url=SCHEMA_URL, json=swagger_schema)

        content = await mcp_server.handle_call_tool("refresh_tools", {})

        assert json.loads(content[0].text)["tool_count"] > 0


@pytest.fixture
def clean_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    structlog.reset_defaults()
    yield root
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestConfigureLogging:
    def test_second_call_keeps_configuration(self, clean_logging):
        configure_logging("INFO")
        first = structlog.get_config()
        handler_count = len(clean_logging.handlers)

        configure_logging("DEBUG")

        assert structlog.get_config() == first
        assert len(clean_logging.handlers) == handler_count
        assert clean_logging.level == logging.INFO

    def test_existing_setup_left_alone(self, clean_logging):
        processors = [structlog.processors.KeyValueRenderer()]
        structlog.configure(processors=processors)
        handlers = clean_logging.handlers[:]

        configure_logging("INFO")

        assert structlog.get_config()["processors"] == processors
        assert clean_logging.handlers == handlers

    def test_events_go_to_stderr(self, clean_logging, capsys):
        configure_logging("INFO")

        structlog.get_logger("magento_mcp_server.test").info("catalog ready", tool_count=3)

        captured = capsys.readouterr()
        assert captured.out == ""
        lines = [line for line in captured.err.splitlines() if "catalog ready" in line]
        assert len(lines) == 1
        event = json.loads(lines[0])
        assert event["event"] == "catalog ready"
        assert event["tool_count"] == 3
        assert event["level"] == "info"
        assert event["logger"] == "magento_mcp_server.test"
