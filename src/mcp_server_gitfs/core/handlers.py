"""Tool call handlers for MCP GitFS Server"""

import logging
import os
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from mcp.types import TextContent, Tool

from ..configuration import ServerConfig
from ..error_handling import JsonRpcErrorCode
from ..github.client import GitHubClient
from ..metrics import MetricsCollector, global_metrics_collector
from .envelope import jsonrpc_error, to_jsonrpc_response, to_tool_text, unwrap
from .notifications import EventSink, LoggingEventSink
from .results import Failure, OperationResult
from .tools import OperationContext, OperationRouter, ToolRegistry

logger = logging.getLogger(__name__)


class CallToolHandler:
    """Centralized tool call handler using the router system"""

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        events: Optional[EventSink] = None,
        metrics: Optional[MetricsCollector] = None,
        github_client_factory: Optional[Callable[[str], GitHubClient]] = None,
    ):
        self.config = config or ServerConfig()
        self.registry = ToolRegistry()
        self.registry.initialize_default_tools(self.config.enabled_tools)
        self.context = OperationContext(
            config=self.config,
            events=events if events is not None else LoggingEventSink(),
            github_client_factory=github_client_factory,
        )
        self.router = OperationRouter(self.registry, self.context)
        self.metrics = metrics or global_metrics_collector

    def list_tools(self) -> List[Tool]:
        return self.registry.list_tools()

    async def _timed(self, label: str, call, **log_context) -> OperationResult:
        request_id = os.urandom(4).hex()
        extra = {"request_id": request_id, **log_context}
        logger.info(f"🔧 [{request_id}] Call: {label}", extra=extra)

        start_time = time.time()
        result = await call()
        duration_ms = (time.time() - start_time) * 1000

        extra["duration_ms"] = round(duration_ms, 2)
        if isinstance(result, Failure):
            logger.warning(
                f"❌ [{request_id}] {label} failed after {duration_ms:.1f}ms: "
                f"{result.kind.value}: {result.message}",
                extra=extra,
            )
            await self.metrics.record_operation(label, False, duration_ms, result.kind.value)
        else:
            logger.info(f"✅ [{request_id}] {label} completed in {duration_ms:.1f}ms", extra=extra)
            await self.metrics.record_operation(label, True, duration_ms)
        return result

    async def run(self, tool: str, arguments: Optional[Mapping[str, Any]]) -> OperationResult:
        """Invoke a tool with an `operation` field and return the raw result"""
        arguments = arguments or {}
        operation = arguments.get("operation")
        label = f"{tool}.{operation}" if isinstance(operation, str) else tool
        return await self._timed(
            label,
            lambda: self.router.call(tool, arguments),
            tool=tool,
            operation=operation if isinstance(operation, str) else None,
        )

    async def call_method(self, method: str, params: Optional[Mapping[str, Any]]) -> OperationResult:
        """Invoke an operation by JSON-RPC method name"""
        return await self._timed(
            method, lambda: self.router.call_method(method, params or {}), operation=method
        )

    async def call_tool(self, name: str, arguments: Optional[dict]) -> List[TextContent]:
        """MCP entry point: one JSON text block with the result or the error"""
        logger.debug(f"Arguments for {name}: {sorted((arguments or {}).keys())}")
        result = await self.run(name, arguments)
        return [TextContent(type="text", text=to_tool_text(result))]

    async def execute(self, tool: str, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """
        Direct invocation for in-process callers.

        Returns:
            The operation's success fields

        Raises:
            OperationError: carrying the failure kind and message
        """
        return unwrap(await self.run(tool, arguments))


class JsonRpcDispatcher:
    """Answers already-parsed JSON-RPC 2.0 request objects.

    The method namespace (`git.clone`, `fs.read`, ...) resolves through the
    same registry as the MCP tools. Requests without an `id` member are
    notifications: they run, but produce no response.
    """

    def __init__(self, handler: CallToolHandler):
        self.handler = handler

    async def handle(self, request: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(request, Mapping):
            return jsonrpc_error(
                None, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request: expected an object"
            )

        request_id = request.get("id")
        if not isinstance(request_id, (str, int, type(None))) or isinstance(request_id, bool):
            return jsonrpc_error(
                None, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request: bad 'id' member"
            )
        if "jsonrpc" in request and request["jsonrpc"] != "2.0":
            return jsonrpc_error(
                request_id, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request: jsonrpc must be '2.0'"
            )

        method = request.get("method")
        if not isinstance(method, str) or not method:
            return jsonrpc_error(
                request_id, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request: 'method' must be a string"
            )

        params = request.get("params")
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            return jsonrpc_error(
                request_id, JsonRpcErrorCode.INVALID_PARAMS, "Invalid params: expected an object"
            )

        result = await self.handler.call_method(method, params)
        if "id" not in request:
            return None
        return to_jsonrpc_response(request_id, result)

    async def handle_batch(self, requests: List[Any]) -> Union[List[Dict[str, Any]], Dict[str, Any], None]:
        if not requests:
            return jsonrpc_error(None, JsonRpcErrorCode.INVALID_REQUEST, "Invalid Request: empty batch")
        responses = []
        for request in requests:
            response = await self.handle(request)
            if response is not None:
                responses.append(response)
        return responses or None

    async def dispatch(self, payload: Any):
        """Single request or batch, as decoded from the wire"""
        if isinstance(payload, list):
            return await self.handle_batch(payload)
        return await self.handle(payload)
