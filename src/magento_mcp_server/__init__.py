"""Magento MCP Server: Magento REST operations as MCP tools."""

__version__ = "0.1.0"
