#!/usr/bin/env python3
"""
Browsy interactive shell

Replays, scrapes and inspects recorded sessions from a prompt.

Usage:
    python cli.py [--headless] [--data-dir DIR]

Examples (at the prompt):
    replay amazon-search
    scrape https://news.ycombinator.com
    api https://api.github.com/repos/microsoft/typescript
    info my-session -v
    call list_sessions
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from datetime import datetime
from typing import Callable, Dict, List, Tuple

from config import get_settings
from session_tools import SessionTools, get_session_tools

HELP_TEXT = """
Browsy - browser session replay

Available commands:
  help                          - Show this help message
  list                          - List all recorded sessions
  sessions                      - Alias for 'list'

  replay <session-name>         - Replay a recorded session
  scrape <url>                  - Scrape a webpage for structured data
  api <url>                     - Try direct API call (fast-path)
  info <session-name>           - Get detailed session information

  tools                         - List all available tools
  call <tool-name> [key=value]  - Call any tool directly

  exit, quit, q                 - Exit

Flags:
  --json                        - Output raw JSON response
  --verbose, -v                 - Show detailed output
"""


def parse_command(line: str) -> Tuple[str, List[str], Dict[str, bool]]:
    """Split a prompt line into command, positional args and flags."""
    parts = line.strip().split()
    command = parts[0] if parts else ""
    args: List[str] = []
    flags: Dict[str, bool] = {}

    for part in parts[1:]:
        if part.startswith("--"):
            flags[part[2:]] = True
        elif part.startswith("-") and len(part) > 1:
            flags[part[1:]] = True
        else:
            args.append(part)

    return command, args, flags


def parse_tool_args(args: List[str]) -> Dict[str, str]:
    parsed = {}
    for arg in args:
        if "=" in arg:
            key, value = arg.split("=", 1)
            parsed[key] = value
    return parsed


class BrowsyShell:
    """Read-eval loop over the session tools."""

    EXIT_COMMANDS = ("exit", "quit", "q")

    def __init__(self, tools: SessionTools, out: Callable[[str], None] = print):
        self.tools = tools
        self.out = out

    async def handle(self, line: str) -> bool:
        """Run one prompt line. Returns False when the shell should exit."""
        command, args, flags = parse_command(line)
        if not command:
            return True
        if command in self.EXIT_COMMANDS:
            self.out("Goodbye!")
            return False

        raw = flags.get("json", False)
        verbose = flags.get("verbose", False) or flags.get("v", False)

        if command in ("help", "h"):
            self.out(HELP_TEXT)
        elif command in ("list", "sessions"):
            await self._list(raw)
        elif command == "tools":
            tools = self.tools.list_tools()
            self.out(f"Available tools ({len(tools)}):")
            for i, tool in enumerate(tools, 1):
                self.out(f"  {i}. {tool['name']} - {tool['description']}")
        elif command == "replay" and args:
            await self._replay(" ".join(args), raw)
        elif command == "scrape" and args:
            await self._scrape(" ".join(args), raw, verbose)
        elif command == "api" and args:
            await self._api(" ".join(args), raw)
        elif command == "info" and args:
            await self._info(" ".join(args), raw, verbose)
        elif command == "call" and args:
            self.out(f"Calling tool: {args[0]}")
            result = await self.tools.call_tool(args[0], parse_tool_args(args[1:]))
            self.out(result.text)
        else:
            self.out(f"Unknown command: {command}")
            self.out("Type 'help' to see available commands")
        return True

    async def _call_json(self, name: str, arguments: dict, raw: bool):
        """Call a tool; print and return None when the reply is not JSON."""
        result = await self.tools.call_tool(name, arguments)
        if raw or result.is_error:
            self.out(result.text)
            return None
        try:
            return json.loads(result.text)
        except json.JSONDecodeError:
            self.out(result.text)
            return None

    async def _list(self, raw: bool):
        data = await self._call_json("list_sessions", {}, raw)
        if data is None:
            return
        if data["sessions"]:
            self.out(f"Found {data['count']} recorded sessions:")
            for i, session in enumerate(data["sessions"], 1):
                self.out(f"  {i}. {session}")
        else:
            self.out("No sessions found. Record some actions using the Chrome extension first.")

    async def _replay(self, session_name: str, raw: bool):
        self.out(f"Replaying session: {session_name}")
        data = await self._call_json("replay_session", {"name": session_name}, raw)
        if data is None:
            return
        if data["ok"]:
            self.out(f"SUCCESS: {data['message']}")
            scraped = data.get("scraped")
            if scraped:
                self.out("Scraped data available:")
                self.out(scraped[:500] + ("..." if len(scraped) > 500 else ""))
        else:
            self.out(f"ERROR: {data['message']}")

    async def _scrape(self, url: str, raw: bool, verbose: bool):
        self.out(f"Scraping: {url}")
        data = await self._call_json("scrape_url", {"url": url}, raw)
        if data is None:
            return
        self.out(f"Scraped: {data['title']}")
        self.out(f"URL: {data['url']}")
        if data["headings"]:
            self.out(f"Headings ({len(data['headings'])}):")
            for heading in data["headings"][:5]:
                self.out(f"  - {heading}")
        if data["links"]:
            self.out(f"Links ({len(data['links'])}):")
            for link in data["links"][:3]:
                self.out(f"  - {link['text']} -> {link['href']}")
        if verbose:
            self.out("\nFull data:")
            self.out(json.dumps(data, indent=2))

    async def _api(self, url: str, raw: bool):
        self.out(f"Trying API fast-path: {url}")
        data = await self._call_json("query_api", {"url": url}, raw)
        if data is None:
            return
        if data["hit"]:
            self.out(f"API call successful ({data.get('status')})")
            self.out("Data preview:")
            self.out(json.dumps(data.get("data"), indent=2)[:1000])
        else:
            self.out("Not a direct API endpoint or call failed")

    async def _info(self, session_name: str, raw: bool, verbose: bool):
        data = await self._call_json("get_session_info", {"name": session_name}, raw)
        if data is None:
            return
        created = data.get("createdAt")
        created_text = datetime.fromtimestamp(created / 1000).strftime("%Y-%m-%d %H:%M:%S") if created else "Unknown"
        self.out(f"Session: {data['name']}")
        self.out(f"Events: {data['eventCount']}")
        self.out(f"Scrape mode: {'Yes' if data['scrapeRequested'] else 'No'}")
        self.out(f"Created: {created_text}")
        if verbose:
            self.out("\nEvent details:")
            for event in data["events"]:
                target = f"-> {event['selector']} " if event.get("selector") else ""
                self.out(f"  {event['index'] + 1}. {event['type']} {target}({event['url']})")

    async def run(self):
        self.out("Browsy ready! Type 'help' for commands or 'exit' to quit.")
        while True:
            try:
                line = await asyncio.to_thread(input, "\n> ")
            except EOFError:
                break
            try:
                if not await self.handle(line):
                    break
            except Exception as e:
                self.out(f"Error: {e}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Interactive shell for Browsy sessions")
    parser.add_argument("--headless", action="store_true", help="Replay sessions in a headless browser")
    parser.add_argument("--data-dir", "-d", help="Directory holding sessions.json")
    args = parser.parse_args()

    if args.data_dir:
        os.environ["BROWSY_DATA_DIR"] = args.data_dir
    logging.basicConfig(level=get_settings().log_level)

    shell = BrowsyShell(get_session_tools(headless=args.headless or None))
    try:
        asyncio.run(shell.run())
    except KeyboardInterrupt:
        print("\nShutting down...")
    sys.exit(0)


if __name__ == "__main__":
    main()
