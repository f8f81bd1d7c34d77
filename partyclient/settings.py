# partyclient/settings.py
from __future__ import annotations

from pydantic import BaseModel
import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y", "on")


class Settings(BaseModel):
    APP_NAME: str = "party-client"

    # Game server (websocket upgrade endpoints /lobby and /game/ws/{id})
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 3030
    # ws:// vs wss://, mirrors the page scheme of the browser client
    SERVER_SECURE: bool = False
    OPEN_TIMEOUT_SEC: float = 10.0

    # Persisted display name
    NAME_STORE_BACKEND: str = "redis"  # "redis" | "memory"
    NAME_STORE_URL: str = "redis://localhost:6379/0"
    NAME_NAMESPACE: str = "partyclient"
    NAME_KEY: str = "rs_name"
    DEFAULT_PLAYER_NAME: str = "Anonymous"

    # Local bridge
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # Dev
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


def get_settings() -> Settings:
    return Settings(
        APP_NAME=os.getenv("APP_NAME", "party-client"),
        SERVER_HOST=os.getenv("SERVER_HOST", "127.0.0.1"),
        SERVER_PORT=int(os.getenv("SERVER_PORT", "3030")),
        SERVER_SECURE=_flag("SERVER_SECURE", "false"),
        OPEN_TIMEOUT_SEC=float(os.getenv("OPEN_TIMEOUT_SEC", "10")),
        NAME_STORE_BACKEND=os.getenv("NAME_STORE_BACKEND", "redis"),
        NAME_STORE_URL=os.getenv("NAME_STORE_URL", "redis://localhost:6379/0"),
        NAME_NAMESPACE=os.getenv("NAME_NAMESPACE", "partyclient"),
        NAME_KEY=os.getenv("NAME_KEY", "rs_name"),
        DEFAULT_PLAYER_NAME=os.getenv("DEFAULT_PLAYER_NAME", "Anonymous"),
        HOST=os.getenv("HOST", "127.0.0.1"),
        PORT=int(os.getenv("PORT", "8000")),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        LOG_JSON=_flag("LOG_JSON", "false"),
    )
