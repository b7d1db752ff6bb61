"""
HTTP handlers for the sync relay
WebSocket upgrade + track listing + audio download + CORS
"""
import asyncio
import itertools
import logging

from aiohttp import web

from .catalog import list_tracks
from .config import Settings
from .files import serve_track
from .hub import Hub

logger = logging.getLogger("syncrelay")

HUB_KEY = web.AppKey("hub", Hub)
SETTINGS_KEY = web.AppKey("settings", Settings)

CORS_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
CORS_HEADERS = "Content-Type, Authorization"

_connection_numbers = itertools.count(1)

# ============================================================
# WEBSOCKET SYNC
# ============================================================

async def ws_sync(request: web.Request) -> web.StreamResponse:
    """Upgrade to a WebSocket and hand the connection to the hub"""
    settings = request.app[SETTINGS_KEY]
    hub = request.app[HUB_KEY]
    peer = request.remote

    origin = request.headers.get("Origin")
    if not settings.origin_allowed(origin):
        logger.warning(f"Rejected WebSocket from {peer}: origin {origin!r} not allowed")
        raise web.HTTPForbidden(text="Origin not allowed")

    ws = web.WebSocketResponse(heartbeat=settings.ws_heartbeat)
    if not ws.can_prepare(request).ok:
        logger.warning(f"WebSocket upgrade failed for {peer}: not a WebSocket request")
        raise web.HTTPBadRequest(text="Expected a WebSocket upgrade")

    try:
        await ws.prepare(request)
    except (web.HTTPException, ConnectionError) as e:
        logger.warning(f"WebSocket upgrade failed for {peer}: {e}")
        raise

    # peer address plus a process-wide sequence number, for log lines
    label = f"{peer}#{next(_connection_numbers)}"
    await hub.serve(ws, label)
    return ws

# ============================================================
# TRACKS
# ============================================================

async def api_tracks(request: web.Request) -> web.Response:
    """List the audio files in the music directory"""
    settings = request.app[SETTINGS_KEY]
    try:
        loop = asyncio.get_running_loop()
        songs = await loop.run_in_executor(None, list_tracks, settings.music_dir)
    except OSError as e:
        logger.error(f"Failed to list tracks in {settings.music_dir}: {e}")
        return web.json_response(
            {"ok": False, "error": "track directory unavailable"},
            status=500
        )
    return web.json_response({"ok": True, "songs": songs})


async def get_audio(request: web.Request) -> web.StreamResponse:
    """Download one track by name (?title=...)"""
    return await serve_track(request, request.app[SETTINGS_KEY].music_dir)

# ============================================================
# CORS
# ============================================================

@web.middleware
async def cors_middleware(request, handler):
    """Add CORS headers; answer preflight OPTIONS requests directly"""
    settings = request.app[SETTINGS_KEY]
    origin = request.headers.get("Origin")
    if settings.any_origin:
        cors = {"Access-Control-Allow-Origin": "*"}
    elif settings.origin_allowed(origin):
        cors = {"Access-Control-Allow-Origin": origin, "Vary": "Origin"}
    else:
        cors = {}
    if cors:
        cors["Access-Control-Allow-Methods"] = CORS_METHODS
        cors["Access-Control-Allow-Headers"] = CORS_HEADERS

    if request.method == "OPTIONS":
        return web.Response(status=200, headers=cors)

    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(cors)
        raise

    # an upgraded WebSocket has already sent its headers
    if not response.prepared:
        response.headers.update(cors)
    return response
