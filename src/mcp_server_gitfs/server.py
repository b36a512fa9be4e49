import logging
from typing import Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .configuration import ServerConfig
from .core.handlers import CallToolHandler
from .metrics import global_metrics_collector

logger = logging.getLogger(__name__)


def create_server(handler: CallToolHandler) -> Server:
    """MCP server exposing the registry's tools"""
    server = Server("mcp-gitfs")

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return handler.list_tools()

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list[TextContent]:
        return await handler.call_tool(name, arguments)

    return server


async def serve(config: Optional[ServerConfig] = None) -> None:
    config = config or ServerConfig()
    handler = CallToolHandler(config)
    server = create_server(handler)

    tools = ", ".join(t.name for t in handler.list_tools())
    logger.info(f"🚀 Starting MCP GitFS server (tools: {tools}, clone dir: {config.clone_dir})")

    options = server.create_initialization_options()
    try:
        async with stdio_server() as (read_stream, write_stream):
            logger.info("🔗 STDIO server connected")
            # raise_exceptions=False keeps one failing request from ending the session
            await server.run(read_stream, write_stream, options, raise_exceptions=False)
    except KeyboardInterrupt:
        logger.info("⌨️ Server interrupted by user")
        raise
    finally:
        metrics = await global_metrics_collector.get_metrics()
        logger.info(
            f"📊 Shutdown: {metrics['total_operations']} operations, "
            f"{sum(metrics['errors'].values())} failed"
        )
