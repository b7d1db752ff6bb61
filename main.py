#!/usr/bin/env python3
"""
Sync Relay - Entry Point
Keeps every connected player on the same track position by relaying
PLAY / PAUSE / SEEK / NEW_TRACK events through one WebSocket hub
"""
import logging
from functools import partial
from typing import Optional

from aiohttp import web

from syncrelay.api import (
    HUB_KEY, SETTINGS_KEY, cors_middleware, ws_sync, api_tracks, get_audio
)
from syncrelay.catalog import list_tracks
from syncrelay.config import Settings
from syncrelay.hub import Hub

logger = logging.getLogger("syncrelay")


async def start_background_tasks(app):
    app[HUB_KEY].start()


async def close_websockets(app):
    await app[HUB_KEY].close_connections()


async def stop_background_tasks(app):
    await app[HUB_KEY].stop()


def create_app(settings: Optional[Settings] = None) -> web.Application:
    """Create and configure the aiohttp application"""
    settings = settings or Settings.from_env()
    app = web.Application(middlewares=[cors_middleware])

    app[SETTINGS_KEY] = settings
    app[HUB_KEY] = Hub(
        catalog=partial(list_tracks, settings.music_dir),
        send_timeout=settings.send_timeout,
    )

    app.router.add_get("/ws", ws_sync)
    app.router.add_get("/tracks", api_tracks)
    app.router.add_get("/get-audio", get_audio)

    app.on_startup.append(start_background_tasks)
    app.on_shutdown.append(close_websockets)
    app.on_cleanup.append(stop_background_tasks)

    if settings.any_origin:
        logger.warning("⚠️ Accepting WebSocket connections from any origin")
    logger.info(f"🎵 Serving tracks from {settings.music_dir.resolve()}")
    return app


def main():
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    app = create_app(settings)

    logger.info(f"🚀 Starting server on {settings.host}:{settings.port}")
    web.run_app(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
