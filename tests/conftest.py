"""Shared fixtures for tests."""

import json
from pathlib import Path

import pytest

from magento_mcp_server.client import MagentoClient, MagentoConfig

FIXTURES_DIR = Path(__file__).parent / "fixtures"

BASE_URL = "http://shop.test"


@pytest.fixture
def swagger_schema() -> dict:
    """Load the offline Swagger schema fixture."""
    with open(FIXTURES_DIR / "swagger_schema.json") as f:
        return json.load(f)


@pytest.fixture
def routes_file() -> Path:
    return FIXTURES_DIR / "routes.json"


@pytest.fixture
def config() -> MagentoConfig:
    return MagentoConfig(base_url=BASE_URL)


@pytest.fixture
async def client(config):
    async with MagentoClient(config) as c:
        yield c
