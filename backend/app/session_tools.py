"""
Session Tools

Transport-independent tool surface: the tool catalogue (static tools plus one
replay tool per stored session) and dispatch of tool calls. The MCP server
and the interactive shell both sit on top of this.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from api_fast_path import ApiFastPath
from errors import SessionNotFound
from models import Session, SessionSummary
from replay_engine import ReplayEngine
from storage import SessionStore

logger = logging.getLogger(__name__)

DYNAMIC_PREFIX = "replay_"


@dataclass
class ToolResult:
    text: str
    is_error: bool = False


def _schema(properties: Optional[Dict[str, Any]] = None, required: Optional[List[str]] = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = required
    return schema


STATIC_TOOLS: List[Dict[str, Any]] = [
    {
        "name": "replay_session",
        "description": "Replay a recorded browser session by name. This will open a browser and perform all the recorded actions.",
        "inputSchema": _schema(
            {"name": {"type": "string", "description": "Name of the session to replay"}},
            ["name"]
        ),
    },
    {
        "name": "scrape_url",
        "description": "Scrape a webpage and return structured data including headings, links, inputs, and text content.",
        "inputSchema": _schema(
            {"url": {"type": "string", "description": "URL to scrape"}},
            ["url"]
        ),
    },
    {
        "name": "query_api",
        "description": "Try to fetch data from a URL using direct API calls (fast-path). Works best with JSON APIs.",
        "inputSchema": _schema(
            {"url": {"type": "string", "description": "API URL to query"}},
            ["url"]
        ),
    },
    {
        "name": "list_sessions",
        "description": "List all available recorded browser sessions.",
        "inputSchema": _schema(),
    },
    {
        "name": "get_session_info",
        "description": "Get detailed information about a specific session including events and metadata.",
        "inputSchema": _schema(
            {"name": {"type": "string", "description": "Name of the session to inspect"}},
            ["name"]
        ),
    },
]

STATIC_TOOL_NAMES = {tool["name"] for tool in STATIC_TOOLS}


def tool_name_for(session_name: str) -> str:
    return DYNAMIC_PREFIX + re.sub(r"[^a-zA-Z0-9_]", "_", session_name)


def _to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


class SessionTools:
    """Tool catalogue and dispatcher over the session store and replay engine."""

    def __init__(
        self,
        store: SessionStore,
        engine_factory: Callable[[], ReplayEngine],
        fast_path: ApiFastPath,
        scrape: Callable[[str], Awaitable[Any]],
        replay_timeout: Optional[float] = None
    ):
        self.store = store
        self.engine_factory = engine_factory
        self.fast_path = fast_path
        self.scrape = scrape
        self.replay_timeout = replay_timeout

    def list_tools(self) -> List[Dict[str, Any]]:
        tools = list(STATIC_TOOLS)
        for session_name in self.store.list():
            tool_name = tool_name_for(session_name)
            if tool_name in STATIC_TOOL_NAMES:
                continue
            tools.append({
                "name": tool_name,
                "description": f"Replay the specific session: {session_name}",
                "inputSchema": _schema(),
            })
        return tools

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Dispatch a tool call; failures come back as error results."""
        args = arguments or {}
        try:
            if name == "replay_session":
                return await self._replay_by_name(self._require(args, "name", "Session name"))
            if name == "scrape_url":
                data = await self.scrape(self._require(args, "url", "URL"))
                return ToolResult(_to_json(data.to_wire()))
            if name == "query_api":
                result = await asyncio.to_thread(self.fast_path.classify, self._require(args, "url", "URL"))
                return ToolResult(_to_json(result.to_wire()))
            if name == "list_sessions":
                sessions = self.store.list()
                return ToolResult(_to_json({"sessions": sessions, "count": len(sessions)}))
            if name == "get_session_info":
                session = self.store.require(self._require(args, "name", "Session name"))
                return ToolResult(_to_json(SessionSummary.from_session(session).model_dump()))
            if name.startswith(DYNAMIC_PREFIX):
                return await self._replay_dynamic(name)
            raise ValueError(f"Unknown tool: {name}")
        except SessionNotFound as e:
            return ToolResult(str(e))
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}")
            return ToolResult(f"Error: {e}", is_error=True)

    @staticmethod
    def _require(args: Dict[str, Any], key: str, label: str) -> str:
        value = args.get(key)
        if not value:
            raise ValueError(f"{label} is required")
        return str(value)

    def resolve_dynamic(self, tool_name: str) -> Optional[Session]:
        """Find the session a generated replay tool refers to."""
        for session_name in self.store.list():
            if tool_name_for(session_name) == tool_name:
                return self.store.load(session_name)

        # Tool names from an older catalogue: guess the separator
        stem = tool_name[len(DYNAMIC_PREFIX):]
        for guess in (stem.replace("_", " "), stem.replace("_", "-"), stem):
            session = self.store.load(guess)
            if session:
                return session
        return None

    async def _replay_dynamic(self, tool_name: str) -> ToolResult:
        session = self.resolve_dynamic(tool_name)
        if not session:
            return ToolResult(f"Session not found for tool: {tool_name}")
        return await self._replay(session)

    async def _replay_by_name(self, session_name: str) -> ToolResult:
        return await self._replay(self.store.require(session_name))

    async def _replay(self, session: Session) -> ToolResult:
        engine = self.engine_factory()
        result = await engine.run(session, allow_fast_path=False, timeout=self.replay_timeout)
        return ToolResult(_to_json({
            "ok": result.ok,
            "message": "Replay completed successfully" if result.ok else result.error,
            "scraped": result.scraped,
            "sessionName": session.name,
        }))


def get_session_tools(headless: Optional[bool] = None) -> SessionTools:
    from api_fast_path import get_api_fast_path
    from config import get_settings
    from replay_engine import create_engine
    from scraper import scrape_url
    from storage import get_session_store

    settings = get_settings()
    return SessionTools(
        store=get_session_store(),
        engine_factory=lambda: create_engine(headless=headless),
        fast_path=get_api_fast_path(),
        scrape=scrape_url,
        replay_timeout=settings.replay_timeout
    )
