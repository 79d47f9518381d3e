"""
MCP request/response logging middleware

Logs every client MCP message with a "CLIENT_MCP" prefix so that client
traffic can be filtered out of the server log:

    CLIENT_MCP → Tool call: get_visible_elements
    CLIENT_MCP ← Tool result: get_visible_elements (152.3ms)
    CLIENT_MCP ✗ Tool error: click_element (3012.0ms): RuntimeError: ...
"""

import json
import logging
import time
from typing import Any

from fastmcp.server.middleware import CallNext, Middleware, MiddlewareContext

logger = logging.getLogger(__name__)


class MCPLoggingMiddleware(Middleware):
    """Log client MCP requests, responses and errors."""

    def __init__(
        self,
        log_request_params: bool = True,
        log_response_data: bool = False,
        max_log_length: int = 5000,
    ):
        """
        Args:
            log_request_params: Log tool and prompt arguments
            log_response_data: Log tool and resource results
            max_log_length: Truncate logged data beyond this many characters
        """
        self.log_request_params = log_request_params
        self.log_response_data = log_response_data
        self.max_log_length = max_log_length

    def _truncate_data(self, data: Any, max_length: int | None = None) -> str:
        """Render data as JSON, truncated to max_length characters."""
        limit = max_length if max_length is not None else self.max_log_length
        try:
            text = json.dumps(data, indent=2, default=str, ensure_ascii=False)
        except (TypeError, ValueError):
            text = str(data)

        if len(text) <= limit:
            return text
        return f"{text[:limit]}... ({len(text)} chars total)"

    def _log_arguments(self, tool_name: str, arguments: dict[str, Any] | None) -> None:
        if not arguments:
            logger.info(f"CLIENT_MCP   Tool '{tool_name}' arguments: (none)")
            return
        logger.info(f"CLIENT_MCP   Tool '{tool_name}' arguments:\n{self._truncate_data(arguments)}")

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return (time.perf_counter() - start) * 1000

    async def on_call_tool(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        tool_name = context.message.name
        logger.info(f"CLIENT_MCP → Tool call: {tool_name}")
        if self.log_request_params:
            self._log_arguments(tool_name, context.message.arguments)

        start = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as e:
            logger.error(
                f"CLIENT_MCP ✗ Tool error: {tool_name} ({self._elapsed_ms(start):.1f}ms): "
                f"{type(e).__name__}: {e}"
            )
            raise

        logger.info(f"CLIENT_MCP ← Tool result: {tool_name} ({self._elapsed_ms(start):.1f}ms)")
        if self.log_response_data:
            logger.info(f"CLIENT_MCP   Tool '{tool_name}' result:\n{self._truncate_data(result)}")
        return result

    async def on_read_resource(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        uri = str(context.message.uri)
        logger.info(f"CLIENT_MCP → Resource read: {uri}")

        start = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as e:
            logger.error(
                f"CLIENT_MCP ✗ Resource error: {uri} ({self._elapsed_ms(start):.1f}ms): "
                f"{type(e).__name__}: {e}"
            )
            raise

        logger.info(f"CLIENT_MCP ← Resource result: {uri} ({self._elapsed_ms(start):.1f}ms)")
        if self.log_response_data:
            logger.info(f"CLIENT_MCP   Resource '{uri}' result:\n{self._truncate_data(result)}")
        return result

    async def on_get_prompt(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        prompt_name = context.message.name
        logger.info(f"CLIENT_MCP → Prompt request: {prompt_name}")
        if self.log_request_params and context.message.arguments:
            logger.info(f"CLIENT_MCP   Prompt arguments:\n{self._truncate_data(context.message.arguments)}")

        start = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as e:
            logger.error(
                f"CLIENT_MCP ✗ Prompt error: {prompt_name} ({self._elapsed_ms(start):.1f}ms): "
                f"{type(e).__name__}: {e}"
            )
            raise

        logger.info(f"CLIENT_MCP ← Prompt result: {prompt_name} ({self._elapsed_ms(start):.1f}ms)")
        return result

    async def on_initialize(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        params = getattr(context.message, "params", None)
        client_info = getattr(params, "clientInfo", None) if params is not None else None
        client_name = getattr(client_info, "name", None) or "unknown"
        client_version = getattr(client_info, "version", None) or "unknown"
        protocol = (getattr(params, "protocolVersion", None) if params is not None else None) or "unknown"

        logger.info(f"CLIENT_MCP → Initialize: {client_name} v{client_version} (protocol: {protocol})")

        try:
            result = await call_next(context)
        except Exception as e:
            logger.error(f"CLIENT_MCP ✗ Initialize error: {type(e).__name__}: {e}")
            raise

        logger.info("CLIENT_MCP ← Initialize complete")
        return result

    async def _log_listing(
        self, kind: str, context: MiddlewareContext, call_next: CallNext
    ) -> Any:
        logger.info(f"CLIENT_MCP → List {kind}")
        try:
            result = await call_next(context)
        except Exception as e:
            logger.error(f"CLIENT_MCP ✗ List {kind} error: {type(e).__name__}: {e}")
            raise

        count = len(result) if hasattr(result, "__len__") else "?"
        logger.info(f"CLIENT_MCP ← List {kind} result: {count} {kind}")
        return result

    async def on_list_tools(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        return await self._log_listing("tools", context, call_next)

    async def on_list_resources(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        return await self._log_listing("resources", context, call_next)

    async def on_list_prompts(self, context: MiddlewareContext, call_next: CallNext) -> Any:
        return await self._log_listing("prompts", context, call_next)
