#!/usr/bin/env python3
"""
SharePoint MCP Server - Main Entry Point

FastMCP-based server for SharePoint site administration with shared-secret or
Azure AD certificate authentication.
"""

import asyncio
import argparse
import logging
import signal
import sys
import time
from pathlib import Path

from fastmcp import FastMCP
from starlette.responses import JSONResponse

from sharepoint_mcp_server.core.config import SharePointConfig
from sharepoint_mcp_server.core.logging_utils import LOG_FORMAT, TOOL_LOG_FILES, configure_tool_logger
from sharepoint_mcp_server.core.rest import SharePointRestClient
from sharepoint_mcp_server.tools import get_sorted_tools
from sharepoint_mcp_server.resources import server_status, health_check


def setup_logging(config: SharePointConfig, transport_mode: str) -> logging.Logger:
    """Set up logging configuration."""
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    level = getattr(logging, config.log_level.upper())
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handlers = []

    server_file_handler = logging.FileHandler(logs_dir / "server.log", mode='a')
    server_file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handlers.append(server_file_handler)

    # stdout carries the protocol in stdio mode
    if transport_mode != "stdio":
        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handlers.append(stdout_handler)

    for handler in handlers:
        root_logger.addHandler(handler)

    for tool_name in TOOL_LOG_FILES:
        configure_tool_logger(tool_name, level=level, logs_dir=logs_dir)

    server_logger = logging.getLogger("sharepoint.server")
    server_logger.setLevel(level)
    return server_logger


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="SharePoint MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Usage:
  python main.py                                                   # Start with stdio transport
  python main.py --authType secret --clientId ID --clientSecret S --tenantId T --siteUrl URL
  python main.py --authType certificate --clientId ID --certificateThumbprint TP --certificatePassword P --tenantId T
  python main.py --transport streamable-http --host 0.0.0.0 --port 8000
  python main.py --read-only                                       # Refuse mutating actions

Every option can also be set through environment variables or a .env file.
        """
    )

    parser.add_argument("--transport", choices=["stdio", "streamable-http"], default=None,
                        help="Transport mode (default: stdio)")
    parser.add_argument("--port", type=int, default=None, help="Port for HTTP transport (default: 8000)")
    parser.add_argument("--host", type=str, default=None,
                        help="Host IP address to bind to for HTTP transport (default: 0.0.0.0)")
    parser.add_argument("--read-only", action="store_true", help="Enable read-only mode")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default=None,
                        help="Logging level (default: INFO)")
    parser.add_argument("--authType", choices=["secret", "certificate"], default=None,
                        help="Authentication scheme (default: certificate when a thumbprint is set)")
    parser.add_argument("--clientId", default=None, help="Application (client) ID")
    parser.add_argument("--clientSecret", default=None, help="Client secret (secret authentication)")
    parser.add_argument("--tenantId", default=None, help="Tenant ID (realm)")
    parser.add_argument("--siteUrl", default=None, help="Default SharePoint site URL")
    parser.add_argument("--certificateThumbprint", default=None, help="Certificate thumbprint (certificate authentication)")
    parser.add_argument("--certificatePassword", default=None, help="PFX password (certificate authentication)")
    return parser.parse_args()


async def main():
    """Main server function."""
    args = parse_args()

    config = SharePointConfig(vars(args))
    transport = config.transport

    logger = setup_logging(config, transport)

    # Missing bootstrap configuration is the only fatal authentication-related condition
    missing = config.missing_fields()
    if missing:
        print("SharePoint credentials not configured.")
        print(f"Missing ({config.auth_type} authentication): {', '.join(missing)}")
        print("Provide them via environment variables, a .env file, or CLI arguments like:")
        print("--clientId=xxx --clientSecret=yyy --tenantId=zzz --siteUrl=https://contoso.sharepoint.com/sites/demo")
        print("Server startup aborted.")
        sys.exit(1)

    logger.info(f"Configuration: {config.site_url}, Auth: {config.auth_type}, Read-only: {config.read_only_mode}")
    if transport == "stdio":
        logger.info(f"Transport mode: {transport} (no port needed)")
    else:
        logger.info(f"Transport mode: {transport}, Host: {config.http_host}, Port: {config.http_port}")

    rest_client = SharePointRestClient(config)

    import sharepoint_mcp_server.core.dependency_injection as di
    di.set_dependencies(config, rest_client)

    sorted_tools = get_sorted_tools()

    mcp = FastMCP("sharepoint-server")

    logger.info("Registering tools:")
    registered_count = 0
    for tool_name, tool_func in sorted_tools.items():
        try:
            mcp.tool(tags={"sharepoint"})(tool_func)
            logger.info(f"  + Registered: {tool_name}")
            registered_count += 1
        except Exception as e:
            logger.error(f"  ! Failed to register {tool_name}: {e}")

    logger.info(f"Successfully registered {registered_count} tools")

    mcp.resource("sharepoint://server/status")(server_status)
    mcp.resource("sharepoint://server/health")(health_check)

    if transport == "streamable-http":
        @mcp.custom_route("/health", methods=["GET"])
        async def http_health_check(request):
            """HTTP health check endpoint for monitoring tools."""
            return JSONResponse({
                "status": "healthy",
                "timestamp": time.strftime("%Y-%m-%d %H:%M:%S UTC", time.gmtime()),
                "server": {
                    "name": config.server_name,
                    "version": config.server_version,
                    "transport": transport,
                    "host": config.http_host,
                    "port": config.http_port,
                },
                "tools": {
                    "count": len(sorted_tools),
                    "available": list(sorted_tools.keys()),
                },
                "configuration": {
                    "read_only_mode": config.read_only_mode,
                    "auth_type": config.auth_type,
                    "site_url": config.site_url,
                },
            })

        @mcp.custom_route("/tools", methods=["GET"])
        async def http_tools_list(request):
            """HTTP tools endpoint for quick tool discovery."""
            tools_info = []
            for tool_name, tool_func in sorted_tools.items():
                description = "SharePoint management tool"
                if tool_func.__doc__:
                    description = tool_func.__doc__.strip().split('\n')[0]
                tools_info.append({"name": tool_name, "description": description})

            return JSONResponse({
                "server": config.server_name,
                "transport": transport,
                "total_tools": len(tools_info),
                "tools": tools_info,
                "timestamp": time.strftime("%Y-%m-%d %H:%M:%S UTC", time.gmtime()),
            })

        logger.info("HTTP endpoints registered: /health and /tools")

    shutdown_requested = False

    def signal_handler(signum, frame):
        """Handle shutdown signals gracefully."""
        nonlocal shutdown_requested
        logger.info("Graceful shutdown initiated")
        shutdown_requested = True

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        if transport == "stdio":
            logger.info("Starting stdio transport")
            await mcp.run_stdio_async()
        else:
            logger.info(f"Starting streamable HTTP transport on {config.http_host}:{config.http_port}")
            logger.info(f"Access URL: http://{config.http_host}:{config.http_port}/mcp")

            server_task = asyncio.create_task(
                mcp.run_http_async(host=config.http_host, port=config.http_port)
            )

            while not shutdown_requested and not server_task.done():
                await asyncio.sleep(0.1)

            if shutdown_requested:
                logger.info("Shutdown requested, stopping HTTP server...")
                server_task.cancel()
                try:
                    await server_task
                except asyncio.CancelledError:
                    pass
                logger.info("HTTP server stopped gracefully")
            else:
                logger.info("HTTP server completed normally")

    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down gracefully...")
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)
    finally:
        logger.info("Cleaning up resources...")
        try:
            await rest_client.close()
            logger.info("HTTP client closed")
        except Exception as e:
            logger.warning(f"Error closing HTTP client: {e}")

        for handler in logging.getLogger().handlers:
            handler.flush()
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    basic_logger = logging.getLogger("sharepoint.startup")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        basic_logger.info("Server stopped by user")
    except Exception as e:
        basic_logger.error(f"Fatal error: {e}")
        sys.exit(1)
