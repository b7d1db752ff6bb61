"""
Audio file transfer
"""
import logging
from pathlib import Path

from aiohttp import web

logger = logging.getLogger("syncrelay")


def sanitize_track_name(name: str) -> str:
    """Keep only the final path component so requests stay inside the music dir"""
    base = name.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    if base in ("", ".", ".."):
        return ""
    return base


async def serve_track(request: web.Request, music_dir: Path) -> web.StreamResponse:
    """Stream one track; FileResponse handles Range and Content-Type"""
    title = sanitize_track_name(request.query.get("title", ""))
    if not title:
        raise web.HTTPBadRequest(text="Missing song title")

    path = Path(music_dir) / title
    if not path.is_file():
        logger.info(f"Requested track not found: {title}")
        raise web.HTTPNotFound(text="Song not found")

    return web.FileResponse(path)
