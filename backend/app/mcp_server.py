"""
Browsy MCP server.

Exposes the session tools (replay_session, scrape_url, query_api,
list_sessions, get_session_info, plus one replay_<name> tool per recorded
session) over the Model Context Protocol on stdio.

Usage:
    python mcp_server.py [--headless]

Stdout carries the protocol, so all logging goes to stderr.
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from config import get_settings
from session_tools import SessionTools, get_session_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "browsy-mcp"


def to_mcp_tools(tools: List[Dict[str, Any]]) -> List[Tool]:
    return [
        Tool(name=t["name"], description=t["description"], inputSchema=t["inputSchema"])
        for t in tools
    ]


def build_server(session_tools: SessionTools) -> Server:
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        # Rebuilt per request so newly saved sessions get their replay tool
        return to_mcp_tools(session_tools.list_tools())

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> list:
        result = await session_tools.call_tool(name, arguments)
        if result.is_error:
            # The SDK turns a raised exception into an isError result
            raise RuntimeError(result.text)
        return [TextContent(type="text", text=result.text)]

    return server


async def start_mcp_server(headless: bool = False) -> None:
    server = build_server(get_session_tools(headless=headless))
    logger.info("Browsy MCP server running on stdio")
    logger.info("Available tools: replay_session, scrape_url, query_api, list_sessions, get_session_info")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Browsy MCP server (stdio)")
    parser.add_argument("--headless", action="store_true", help="Replay sessions in a headless browser")
    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level, stream=sys.stderr)
    try:
        asyncio.run(start_mcp_server(headless=args.headless))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
