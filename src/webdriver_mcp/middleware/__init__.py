"""FastMCP middleware for the WebDriver MCP Server."""

from .mcp_logging import MCPLoggingMiddleware

__all__ = ["MCPLoggingMiddleware"]
