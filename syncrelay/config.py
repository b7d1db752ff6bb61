"""
Runtime settings read from the environment
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .hub import DEFAULT_SEND_TIMEOUT


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


def _origins(value: str) -> Tuple[str, ...]:
    origins = tuple(o.strip() for o in value.split(",") if o.strip())
    return origins or ("*",)


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    music_dir: Path = Path("./music")
    # "*" accepts any Origin on the WebSocket upgrade and in CORS headers
    allowed_origins: Tuple[str, ...] = ("*",)
    send_timeout: float = DEFAULT_SEND_TIMEOUT
    ws_heartbeat: Optional[float] = None
    log_level: str = "INFO"

    @property
    def any_origin(self) -> bool:
        return "*" in self.allowed_origins

    def origin_allowed(self, origin: Optional[str]) -> bool:
        if self.any_origin:
            return True
        return origin is not None and origin in self.allowed_origins

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from SERVER_HOST, PORT and the SYNC_* variables"""
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("SERVER_HOST", "0.0.0.0"),
            port=int(env.get("PORT", 8080)),
            music_dir=Path(env.get("SYNC_MUSIC_DIR", "./music")),
            allowed_origins=_origins(env.get("SYNC_ALLOWED_ORIGINS", "*")),
            send_timeout=float(env.get("SYNC_SEND_TIMEOUT", DEFAULT_SEND_TIMEOUT)),
            ws_heartbeat=_optional_float(env.get("SYNC_WS_HEARTBEAT")),
            log_level=env.get("SYNC_LOG_LEVEL", "INFO").upper(),
        )
