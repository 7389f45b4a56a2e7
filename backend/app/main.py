from fastapi import FastAPI, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from typing import Callable, List
import asyncio
import logging
import sys
import time

from api_fast_path import ApiFastPath, get_api_fast_path
from config import get_settings
from errors import TransportError
from models import AnalyzeNetworkRequest, SaveSessionRequest, Session
from network_analyzer import NetworkAnalyzer
from replay_engine import ReplayEngine, create_engine
from scraper import scrape_url
from script_export import generate_script, script_filename
from storage import SessionStore, get_session_store

# ===== WINDOWS FIX FOR PLAYWRIGHT =====
# Fix for Windows: Playwright needs ProactorEventLoop on Windows
if sys.platform == 'win32':
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())
# ======================================

logger = logging.getLogger(__name__)

SERVICE_NAME = "Browsy Server"
SERVICE_VERSION = "1.0.0"
STARTED_AT = time.monotonic()

settings = get_settings()

app = FastAPI(title=SERVICE_NAME, version=SERVICE_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)

# WebSocket connections for real-time replay logs
active_connections: List[WebSocket] = []


# ============ Dependencies ============

def get_store() -> SessionStore:
    return get_session_store()


def get_fast_path() -> ApiFastPath:
    return get_api_fast_path()


def get_engine_factory() -> Callable[..., ReplayEngine]:
    return create_engine


def get_scraper():
    return scrape_url


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "message": message})


# ============ WebSocket Logging ============
@app.websocket("/ws/logs")
async def websocket_logs(websocket: WebSocket):
    await websocket.accept()
    active_connections.append(websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        active_connections.remove(websocket)


async def broadcast_log(message: str):
    """Send a replay log line to all connected WebSocket clients"""
    logger.info(message)

    disconnected = []
    for connection in active_connections:
        try:
            await connection.send_text(message)
        except Exception as e:
            logger.warning(f"[WS ERROR] Failed to send to client: {e}")
            disconnected.append(connection)

    for conn in disconnected:
        if conn in active_connections:
            active_connections.remove(conn)


def _broadcast_callback(message: str):
    asyncio.get_running_loop().create_task(broadcast_log(message))


# ============ Health Check ============
@app.get("/")
async def root():
    """Service banner"""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "endpoints": [
            "/api/sessions",
            "/api/replay/{name}",
            "/api/scrape",
            "/api/sessions/{name}/script",
            "/api/sessions/{name}/analyze",
            "/api/network/analyze",
        ],
    }


@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "platform": sys.platform}


# ============ Session Management ============
@app.post("/api/sessions")
async def save_session(request: SaveSessionRequest, store: SessionStore = Depends(get_store)):
    """Save a recorded session, replacing any session with the same name"""
    if not request.name or request.events is None:
        return error_response(400, "missing name/events")

    try:
        session = Session(
            name=request.name,
            events=request.events,
            scrape_requested=request.scrape_requested,
            dom_snapshot=request.dom_snapshot,
        )
    except ValidationError as e:
        return error_response(400, str(e))

    try:
        store.save(session)
    except TransportError as e:
        logger.error(f"Save session error: {e}")
        return error_response(500, str(e))

    return {"ok": True, "message": f"Session \"{session.name}\" saved successfully"}


@app.get("/api/sessions")
async def list_sessions(store: SessionStore = Depends(get_store)):
    """List all session names"""
    try:
        return {"ok": True, "sessions": store.list()}
    except TransportError as e:
        return error_response(500, str(e))


@app.get("/api/sessions/{name}")
async def get_session(name: str, store: SessionStore = Depends(get_store)):
    """Get a session by name"""
    try:
        session = store.load(name)
    except TransportError as e:
        return error_response(500, str(e))
    if not session:
        return error_response(404, "session not found")
    return {"ok": True, "session": session.to_wire()}


@app.delete("/api/sessions/{name}")
async def delete_session(name: str, store: SessionStore = Depends(get_store)):
    """Delete a session"""
    try:
        deleted = store.delete(name)
    except TransportError as e:
        return error_response(500, str(e))
    if not deleted:
        return error_response(404, "session not found")
    return {"ok": True, "message": f"Session \"{name}\" deleted"}


# ============ Replay ============
@app.post("/api/replay/{name}")
async def replay_session(
    name: str,
    store: SessionStore = Depends(get_store),
    engine_factory: Callable[..., ReplayEngine] = Depends(get_engine_factory)
):
    """Replay a session, using the API fast-path when the last URL is a JSON API"""
    try:
        session = store.load(name)
    except TransportError as e:
        return error_response(500, str(e))
    if not session:
        return error_response(404, "session not found")

    engine = engine_factory(log_callback=_broadcast_callback)
    result = await engine.run(session, allow_fast_path=True, timeout=settings.replay_timeout)

    if result.fast_path:
        return {"ok": True, "message": "API fast-path used", "data": result.data, "fastPath": True}
    if result.ok:
        return {
            "ok": True,
            "message": "Replay completed successfully",
            "scraped": result.scraped,
            "fastPath": False,
        }
    return error_response(500, result.error or "Replay failed")


@app.get("/api/sessions/{name}/script")
async def export_script(name: str, store: SessionStore = Depends(get_store)):
    """Download a standalone Playwright script for a session"""
    try:
        session = store.load(name)
    except TransportError as e:
        return error_response(500, str(e))
    if not session:
        return error_response(404, "session not found")

    return Response(
        content=generate_script(session),
        media_type="text/plain",
        headers={
            "Content-Disposition": f'attachment; filename="{script_filename(session.name)}"'
        }
    )


# ============ Scrape / Analysis ============
@app.get("/api/scrape")
async def scrape(url: str = Query(""), scraper=Depends(get_scraper)):
    """Scrape a URL in a fresh headless browser"""
    if not url:
        return error_response(400, "url parameter required")

    try:
        data = await scraper(url)
    except Exception as e:
        logger.error(f"Scrape error: {e}")
        return error_response(500, str(e))
    return {"ok": True, "data": data.to_wire()}


@app.post("/api/sessions/{name}/analyze")
async def analyze_session(
    name: str,
    store: SessionStore = Depends(get_store),
    fast_path: ApiFastPath = Depends(get_fast_path)
):
    """Check which of a session's URLs the API fast-path can serve"""
    try:
        session = store.load(name)
    except TransportError as e:
        return error_response(500, str(e))
    if not session:
        return error_response(404, "session not found")

    urls = [event.page_url for event in session.events]
    analysis = await asyncio.to_thread(fast_path.analyze_session, urls)
    return {"ok": True, "analysis": analysis}


@app.post("/api/network/analyze")
async def analyze_network(request: AnalyzeNetworkRequest):
    """Analyze captured network requests for direct API replacement"""
    return {
        "ok": True,
        "analysis": NetworkAnalyzer.analyze_requests(request.requests),
        "optimization": NetworkAnalyzer.optimize_session(request.requests),
    }
