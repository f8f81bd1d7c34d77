# partyclient/main.py
from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from redis.asyncio import Redis

from partyclient.client import GameClient, LobbyClient
from partyclient.domain.common.types import Variant
from partyclient.logging_config import configure_logging, get_logger
from partyclient.settings import Settings, get_settings
from partyclient.store.name_store import MemoryNameStore, NameStore, RedisNameStore
from partyclient.transport.connection import Connector
from partyclient.transport.views import router as client_router

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    name_store: Optional[NameStore] = None,
    connector: Optional[Connector] = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME)

    def make_game(variant: Variant) -> GameClient:
        return GameClient(settings, variant=variant, name_store=app.state.name_store, connector=connector)

    def make_lobby() -> LobbyClient:
        return LobbyClient(settings, name_store=app.state.name_store, connector=connector)

    app.state.settings = settings
    app.state.make_game = make_game
    app.state.make_lobby = make_lobby
    app.state.game = None
    app.state.lobby = None
    app.state.redis = None

    @app.on_event("startup")
    async def _startup() -> None:
        configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
        if name_store is not None:
            app.state.name_store = name_store
        elif settings.NAME_STORE_BACKEND == "memory":
            app.state.name_store = MemoryNameStore()
        else:
            r = Redis.from_url(settings.NAME_STORE_URL, decode_responses=False)
            await r.ping()
            app.state.redis = r
            app.state.name_store = RedisNameStore(r, namespace=settings.NAME_NAMESPACE, key=settings.NAME_KEY)
        logger.info("Client bridge started", backend=type(app.state.name_store).__name__)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if app.state.game is not None:
            await app.state.game.leave()
        if app.state.lobby is not None:
            await app.state.lobby.close()
        r: Optional[Redis] = app.state.redis
        if r is not None:
            await r.aclose()

    @app.get("/health")
    async def health():
        game = app.state.game
        lobby = app.state.lobby
        return {
            "ok": True,
            "game": game.state if game is not None else "DISCONNECTED",
            "lobby": lobby.state if lobby is not None else "DISCONNECTED",
        }

    app.include_router(client_router)
    return app


app = create_app()
