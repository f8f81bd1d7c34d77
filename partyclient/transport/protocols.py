# partyclient/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from partyclient.domain.common.types import Presence, Scope, Variant
from partyclient.domain.errors import ProtocolError
from partyclient.store.models import (
    AnagramsSession,
    AnySession,
    Card,
    ChatMessage,
    LobbyEntry,
    Player,
    PlayerBoard,
    SetSession,
)
from partyclient.transport.envelope import Envelope, encode, encode_raw, maybe_payload


# =========================
# Kinds per dispatcher scope
# =========================

SNAPSHOT_KINDS = {
    "init",
    "player_joined",
    "player_left",
    "game_over",
    "challenge_started",
    "challenge_resolved",
    "paused",
}

PRESENCE_BY_KIND: Dict[str, Presence] = {
    "player_joined": "joined",
    "player_left": "left",
}

LOBBY_LIST_KINDS = {"games_list", "game_created"}

KINDS_BY_SCOPE: Dict[Scope, set] = {
    "set": SNAPSHOT_KINDS | {"chat", "set_found", "games_list"},
    "anagrams": SNAPSHOT_KINDS | {"chat", "resumed", "new_tile", "anagram_complete", "games_list"},
    "lobby": LOBBY_LIST_KINDS,
}


# =========================
# Incoming (Server -> Client)
# =========================

class WireGameState(BaseModel):
    """`game_state` block shared by both variants."""
    id: str
    name: str = ""
    current_state: str = ""
    players: List[Player] = Field(default_factory=list)
    chat: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        return value if isinstance(value, str) else str(value)


class SnapshotBase(BaseModel):
    game_state: WireGameState
    # top-level chat is authoritative when present
    chat: Optional[List[Dict[str, Any]]] = None

    def _chat(self) -> Optional[List[ChatMessage]]:
        if self.chat is None:
            return None
        return [ChatMessage.from_wire(m) for m in self.chat if isinstance(m, dict)]

    def _common(self) -> Dict[str, Any]:
        gs = self.game_state
        return {
            "id": gs.id,
            "name": gs.name,
            "current_state": gs.current_state,
            "players": gs.players,
            "chat": self._chat(),
        }


class SetSnapshot(SnapshotBase):
    board: List[Card] = Field(default_factory=list)
    deck: List[Card] = Field(default_factory=list)
    previous_set: Optional[List[Card]] = None
    finder_name: Optional[str] = None

    def to_session(self) -> SetSession:
        return SetSession(
            **self._common(),
            board=self.board,
            previous_set=self.previous_set,
            finder_name=self.finder_name,
            deck_remaining=len(self.deck),
        )


class AnagramsSnapshot(SnapshotBase):
    pot: List[str] = Field(default_factory=list)
    players_boards: List[PlayerBoard] = Field(default_factory=list)

    def to_session(self) -> AnagramsSession:
        return AnagramsSession(
            **self._common(),
            pot=self.pot,
            players_boards=self.players_boards,
        )


class InSnapshot(BaseModel):
    kind: str
    snapshot: Union[SetSnapshot, AnagramsSnapshot]

    @property
    def presence(self) -> Optional[Presence]:
        return PRESENCE_BY_KIND.get(self.kind)

    def to_session(self) -> AnySession:
        return self.snapshot.to_session()


class InChat(BaseModel):
    sender: str = "Player"
    text: str = ""
    message_type: Optional[str] = None
    cards: Optional[List[Card]] = None

    def to_message(self) -> ChatMessage:
        raw: Dict[str, Any] = {"sender": self.sender, "text": self.text}
        if self.message_type:
            raw["message_type"] = self.message_type
        if self.cards:
            raw["cards"] = self.cards
        return ChatMessage.from_wire(raw)


class InNewTile(BaseModel):
    pot: List[str]


class InBoard(BaseModel):
    board: List[Card]


class InGamesList(BaseModel):
    games: List[LobbyEntry]


IncomingMessage = Union[InSnapshot, InChat, InNewTile, InBoard, InGamesList]


# =========================
# Parser helpers
# =========================

def _expect_dict(payload: Any, kind: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise ProtocolError("payload is not an object", kind=kind)
    return payload


def _parse_snapshot(env: Envelope, scope: Scope) -> IncomingMessage:
    payload = _expect_dict(env.payload(), env.kind)
    model = SetSnapshot if scope == "set" else AnagramsSnapshot
    return InSnapshot(kind=env.kind, snapshot=model.model_validate(payload))


def _parse_set_found(env: Envelope, scope: Scope) -> IncomingMessage:
    payload = env.payload()
    if isinstance(payload, list):
        return InBoard(board=payload)
    payload = _expect_dict(payload, env.kind)
    if "game_state" not in payload:
        if "board" not in payload:
            raise ProtocolError("set_found without board", kind=env.kind)
        return InBoard(board=payload["board"])
    return InSnapshot(kind=env.kind, snapshot=SetSnapshot.model_validate(payload))


def _parse_chat(env: Envelope, scope: Scope) -> IncomingMessage:
    """
    Chat data is {sender, message|text, message_type?, cards?}.
    Non-object data is kept as plain text from "Player".
    """
    payload = maybe_payload(env)
    if not isinstance(payload, dict):
        return InChat(sender="Player", text=env.data)

    sender = payload.get("sender") or "Player"
    text = payload.get("text") or payload.get("message")
    if not text:
        # no recognizable body; show the raw frame data
        return InChat(sender="Unknown", text=env.data)
    return InChat(
        sender=str(sender),
        text=str(text),
        message_type=payload.get("message_type"),
        cards=payload.get("cards"),
    )


def _parse_new_tile(env: Envelope, scope: Scope) -> IncomingMessage:
    payload = env.payload()
    if isinstance(payload, dict):
        payload = payload.get("pot")
    if not isinstance(payload, list):
        raise ProtocolError("new_tile without pot list", kind=env.kind)
    return InNewTile(pot=payload)


def _parse_games(env: Envelope, scope: Scope) -> IncomingMessage:
    payload = env.payload()
    if isinstance(payload, dict) and "games" in payload:
        payload = payload["games"]
    if not isinstance(payload, list):
        raise ProtocolError("games list is not a list", kind=env.kind)
    return InGamesList(games=payload)


_PARSERS = {
    **{k: _parse_snapshot for k in SNAPSHOT_KINDS},
    "resumed": _parse_snapshot,
    "anagram_complete": _parse_snapshot,
    "set_found": _parse_set_found,
    "chat": _parse_chat,
    "new_tile": _parse_new_tile,
    "games_list": _parse_games,
    "game_created": _parse_games,
}


def parse_incoming(env: Envelope, scope: Scope) -> IncomingMessage:
    """
    Envelope -> validated incoming model for the given dispatcher scope.
    Raises ProtocolError (unknown kind / missing fields), DecodeError (inner
    JSON) or pydantic ValidationError.
    """
    if env.kind not in KINDS_BY_SCOPE[scope]:
        raise ProtocolError(f"Unknown message kind for {scope}", kind=env.kind)
    return _PARSERS[env.kind](env, scope)


# =========================
# Outgoing (Client -> Server)
# =========================

class OutBase(BaseModel):
    kind: str

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"kind"})

    def to_wire(self) -> str:
        return encode(self.kind, self.payload())


# ---- Lobby ----

class OutCreateGame(OutBase):
    kind: Literal["create_game"] = "create_game"
    name: str = Field(min_length=1, max_length=60)
    creator: str = Field(min_length=1, max_length=24)
    game_type: Variant = "set"


class OutJoinGame(OutBase):
    kind: Literal["join_game"] = "join_game"
    id: str
    player: str = Field(min_length=1)


class OutDeleteGame(OutBase):
    kind: Literal["delete_game"] = "delete_game"
    id: str


class OutListGames(OutBase):
    kind: Literal["list_games"] = "list_games"

    def to_wire(self) -> str:
        return encode_raw(self.kind, "")


# ---- Game ----

class OutJoinPlayer(OutBase):
    kind: Literal["join_player"] = "join_player"
    name: str = Field(min_length=1)


class OutChat(OutBase):
    kind: Literal["chat"] = "chat"
    sender: str
    message: str = Field(min_length=1)


class OutSetAttempt(OutBase):
    """Server reads `data` as a JSON array of three board positions."""
    kind: Literal["set_attempt"] = "set_attempt"
    indices: List[int] = Field(min_length=3, max_length=3)
    player_id: Optional[str] = None

    @field_validator("indices")
    @classmethod
    def _distinct_positions(cls, value: List[int]) -> List[int]:
        if len(set(value)) != 3 or any(i < 0 for i in value):
            raise ValueError("set_attempt needs 3 distinct board positions")
        return value

    def to_wire(self) -> str:
        return encode_raw(self.kind, self.indices, player_id=self.player_id)


class OutAnagramAttempt(OutBase):
    """Server reads `data` as the bare word."""
    kind: Literal["anagram_attempt"] = "anagram_attempt"
    word: str = Field(min_length=1)
    player_id: Optional[str] = None

    def to_wire(self) -> str:
        return encode_raw(self.kind, self.word, player_id=self.player_id)


OutgoingCommand = Union[
    OutCreateGame,
    OutJoinGame,
    OutDeleteGame,
    OutListGames,
    OutJoinPlayer,
    OutChat,
    OutSetAttempt,
    OutAnagramAttempt,
]
