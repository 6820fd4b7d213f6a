#!/usr/bin/env python3
"""Coolify MCP Server - manage applications, databases, services and servers on a Coolify instance."""

import asyncio
import logging
import os
import sys
from typing import Any

from dotenv import load_dotenv
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, Tool

from coolify_client import ConfigurationError, CoolifyClient, load_credentials
from operations import OPERATIONS, build_tool_schema, run_operation
from resources import register_resources

load_dotenv()

logger = logging.getLogger(__name__)

SERVER_NAME = "coolify"


def create_server(client: CoolifyClient) -> Server:
    """Attach the operation catalog and resources to a new MCP server."""
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """List available Coolify tools."""
        return [build_tool_schema(operation) for operation in OPERATIONS.values()]

    # Required arguments are checked by the operations themselves so the
    # caller gets their error text rather than a schema validation error.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        return await run_operation(client, name, arguments)

    register_resources(server, client)
    return server


def configure_logging() -> None:
    # stdout carries the MCP stream
    logging.basicConfig(
        stream=sys.stderr,
        level=os.getenv("COOLIFY_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def main():
    """Run the MCP server."""
    configure_logging()
    try:
        client = CoolifyClient(load_credentials())
    except ConfigurationError as e:
        logger.error("%s", e)
        sys.exit(1)

    if not await client.is_healthy():
        logger.error("Failed to connect to Coolify API at %s. Check COOLIFY_BASE_URL and COOLIFY_API_TOKEN.", client.base_url)
        sys.exit(1)

    server = create_server(client)
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
