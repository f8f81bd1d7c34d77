# partyclient/transport/views.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from partyclient.client import GameClient, LobbyClient
from partyclient.domain.common.types import Variant
from partyclient.domain.errors import TransportError
from partyclient.domain.matching import card_label, rank_players, summarize_boards
from partyclient.domain.reconciler import ClientView
from partyclient.logging_config import get_logger
from partyclient.store.models import AnagramsSession, SetSession

logger = get_logger(__name__)

router = APIRouter(tags=["client"])


# =========================
# Bodies
# =========================

class NameIn(BaseModel):
    name: str


class CreateGameIn(BaseModel):
    name: str
    game_type: Variant = "set"


class ChatIn(BaseModel):
    text: str


class SelectIn(BaseModel):
    index: int = Field(ge=0)


class AttemptIn(BaseModel):
    word: str


# =========================
# Helpers
# =========================

def render_view(view: ClientView, *, selected=()) -> Dict[str, Any]:
    """ClientView -> JSON-ready dict for the UI process."""
    session = view.session
    out: Dict[str, Any] = {
        "connection_state": view.connection_state,
        "session": None,
        "chat": [m.model_dump(mode="json") for m in view.chat],
        "lobby": [e.model_dump(mode="json") for e in view.lobby],
        "show_summary": view.show_summary,
        "set_available": view.set_available,
    }
    if session is None:
        return out

    body = session.model_dump(mode="json", exclude={"chat"})
    body["ranking"] = [p.model_dump(mode="json") for p in rank_players(session.players)]
    if isinstance(session, SetSession):
        body["labels"] = [list(card_label(c)) for c in session.board]
        body["selected"] = list(selected)
    elif isinstance(session, AnagramsSession) and view.show_summary:
        body["summary"] = [
            {
                "player": row.player.model_dump(mode="json"),
                "words": row.words,
                "word_count": row.summary.word_count,
                "extra_letters": row.summary.extra_letters,
                "total": row.summary.total,
            }
            for row in summarize_boards(session)
        ]
    out["session"] = body
    return out


def _game(request: Request) -> GameClient:
    game: Optional[GameClient] = getattr(request.app.state, "game", None)
    if game is None or game.game_id is None:
        raise HTTPException(status_code=404, detail="No active game")
    return game


def _lobby(request: Request) -> LobbyClient:
    lobby: Optional[LobbyClient] = getattr(request.app.state, "lobby", None)
    if lobby is None:
        raise HTTPException(status_code=404, detail="Lobby not connected")
    return lobby


def _sent(ok: bool) -> Dict[str, Any]:
    if not ok:
        raise HTTPException(status_code=409, detail="Command not sent")
    return {"ok": True}


def _game_view(game: GameClient) -> Dict[str, Any]:
    return render_view(game.view(), selected=game.selection.indices)


# =========================
# Name
# =========================

@router.get("/name")
async def get_name(request: Request):
    name = await request.app.state.name_store.get_name()
    return {"name": name, "needs_prompt": name is None}


@router.put("/name")
async def put_name(body: NameIn, request: Request):
    try:
        name = await request.app.state.name_store.set_name(body.name)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"name": name}


# =========================
# Lobby
# =========================

@router.post("/lobby/connect")
async def lobby_connect(request: Request):
    prev: Optional[LobbyClient] = getattr(request.app.state, "lobby", None)
    if prev is not None:
        await prev.close()
        request.app.state.lobby = None

    lobby: LobbyClient = request.app.state.make_lobby()
    try:
        await lobby.connect()
    except TransportError as e:
        logger.warning("Lobby connect failed", error=e.message)
        await lobby.close()
        raise HTTPException(status_code=502, detail=e.message)
    request.app.state.lobby = lobby
    return {"ok": True, "state": lobby.state}


@router.get("/lobby/games")
async def lobby_games(request: Request):
    lobby = _lobby(request)
    return {"state": lobby.state, "games": [e.model_dump(mode="json") for e in lobby.view().lobby]}


@router.post("/lobby/games")
async def lobby_create(body: CreateGameIn, request: Request):
    lobby = _lobby(request)
    return _sent(await lobby.create_game(body.name, body.game_type))


@router.delete("/lobby/games/{game_id}")
async def lobby_delete(game_id: str, request: Request):
    lobby = _lobby(request)
    return _sent(await lobby.delete_game(game_id))


# =========================
# Game
# =========================

@router.post("/games/{variant}/{game_id}/join")
async def game_join(variant: Variant, game_id: str, request: Request):
    if await request.app.state.name_store.get_name() is None:
        raise HTTPException(status_code=409, detail="Please enter a name")

    prev: Optional[GameClient] = getattr(request.app.state, "game", None)
    if prev is not None:
        await prev.leave()
        request.app.state.game = None

    game: GameClient = request.app.state.make_game(variant)
    try:
        await game.join(game_id)
    except TransportError as e:
        logger.warning("Game join failed", game_id=game_id, error=e.message)
        await game.leave()
        raise HTTPException(status_code=502, detail=e.message)
    request.app.state.game = game
    return {"ok": True, "game_id": game.game_id, "state": game.state}


@router.post("/game/leave")
async def game_leave(request: Request):
    game = _game(request)
    await game.leave()
    request.app.state.game = None
    return {"ok": True}


@router.get("/game")
async def game_view(request: Request):
    return _game_view(_game(request))


@router.post("/game/chat")
async def game_chat(body: ChatIn, request: Request):
    return _sent(await _game(request).send_chat(body.text))


@router.post("/game/select")
async def game_select(body: SelectIn, request: Request):
    game = _game(request)
    if game.variant != "set":
        raise HTTPException(status_code=409, detail="Not a set game")
    sent = await game.select_card(body.index)
    return {"sent": sent, "selected": list(game.selection.indices)}


@router.post("/game/attempt")
async def game_attempt(body: AttemptIn, request: Request):
    game = _game(request)
    if game.variant != "anagrams":
        raise HTTPException(status_code=409, detail="Not an anagrams game")
    return _sent(await game.attempt_word(body.word))


@router.post("/game/dismiss")
async def game_dismiss(request: Request):
    game = _game(request)
    game.dismiss_summary()
    return _game_view(game)
