# partyclient/store/models.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from partyclient.domain.common.types import (
    SYSTEM_SENDER,
    GameStateName,
    MessageType,
    normalize_state,
)

AttrIndex = int


class Card(BaseModel):
    """
    One Set card: (shape, filling, color, count), each attribute in {0, 1, 2}.
    The server sends cards as {"array": [..4..]}; a bare 4-list is accepted too.
    """
    model_config = ConfigDict(frozen=True)

    array: Tuple[AttrIndex, AttrIndex, AttrIndex, AttrIndex]

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return {"array": tuple(value)}
        return value

    @field_validator("array")
    @classmethod
    def _attrs_in_range(cls, value: Tuple[int, int, int, int]) -> Tuple[int, int, int, int]:
        for attr in value:
            if attr not in (0, 1, 2):
                raise ValueError(f"card attribute out of range: {attr}")
        return value

    def __getitem__(self, i: int) -> int:
        return self.array[i]

    def __len__(self) -> int:
        return 4


class Player(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    score: int = Field(default=0, ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        return value if isinstance(value, str) else str(value)


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    sender: str
    text: str
    is_system: bool = False
    message_type: MessageType = "info"
    cards: Optional[List[Card]] = None

    @classmethod
    def from_wire(cls, raw: Dict[str, Any]) -> "ChatMessage":
        """
        Server chat entries are {sender, text|message, message_type?, cards?}.
        System messages without a type default to "system", others to "info".
        """
        sender = raw.get("sender") or "Player"
        text = raw.get("text")
        if text is None:
            text = raw.get("message", "")
        is_system = sender == SYSTEM_SENDER
        message_type = raw.get("message_type") or ("system" if is_system else "info")
        return cls(
            sender=str(sender),
            text=str(text),
            is_system=is_system,
            message_type=message_type,
            cards=raw.get("cards") or None,
        )

    @classmethod
    def system(cls, text: str, message_type: MessageType = "system") -> "ChatMessage":
        return cls(sender=SYSTEM_SENDER, text=text, is_system=True, message_type=message_type)


class PlayerBoard(BaseModel):
    """Words one Anagrams player currently holds."""
    model_config = ConfigDict(frozen=True)

    player: Player
    words: List[str] = Field(default_factory=list)


class GameSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    current_state: GameStateName = "waiting"
    players: List[Player] = Field(default_factory=list)
    # None means "snapshot carried no chat"; the reconciler keeps local chat then
    chat: Optional[List[ChatMessage]] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        return value if isinstance(value, str) else str(value)

    @field_validator("current_state", mode="before")
    @classmethod
    def _normalize_state(cls, value: Any) -> GameStateName:
        return normalize_state(value)

    def player_by_name(self, name: str) -> Optional[Player]:
        for p in self.players:
            if p.name == name:
                return p
        return None

    @property
    def is_over(self) -> bool:
        return self.current_state == "game_over"


class SetSession(GameSession):
    variant: Literal["set"] = "set"
    board: List[Card] = Field(default_factory=list)
    previous_set: Optional[List[Card]] = None
    finder_name: Optional[str] = None
    deck_remaining: int = Field(default=0, ge=0)


class AnagramsSession(GameSession):
    variant: Literal["anagrams"] = "anagrams"
    pot: List[str] = Field(default_factory=list)
    players_boards: List[PlayerBoard] = Field(default_factory=list)

    @field_validator("pot", mode="before")
    @classmethod
    def _pot_letters(cls, value: Any) -> Any:
        if isinstance(value, str):
            return list(value)
        return value


AnySession = Union[SetSession, AnagramsSession]


class LobbyEntry(BaseModel):
    """
    One row of the lobby. Rebuilt wholesale on every games_list push.
    Accepts the lobby shape {id, name, creator, players_online} or the server's
    game-state shape {id, name, players: [...]}.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    creator: str = ""
    players_online: int = Field(default=0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _from_game_state(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        data = dict(value)
        players = data.pop("players", None)
        if isinstance(players, list):
            if not data.get("creator") and players:
                first = players[0]
                data["creator"] = first.get("name", "") if isinstance(first, dict) else str(first)
            data.setdefault("players_online", len(players))
        if "id" in data and not isinstance(data["id"], str):
            data["id"] = str(data["id"])
        return data
