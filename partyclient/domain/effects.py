# partyclient/domain/effects.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Union

from partyclient.domain.common.types import Presence
from partyclient.store.models import AnySession, Card, ChatMessage, LobbyEntry


@dataclass(frozen=True)
class ReplaceSession:
    session: AnySession
    kind: str = "init"
    presence: Optional[Presence] = None


@dataclass(frozen=True)
class AppendChat:
    message: ChatMessage


@dataclass(frozen=True)
class ReplacePot:
    letters: Tuple[str, ...]


@dataclass(frozen=True)
class ReplaceBoard:
    cards: Tuple[Card, ...]


@dataclass(frozen=True)
class ReplaceLobby:
    entries: Tuple[LobbyEntry, ...]


@dataclass(frozen=True)
class Ignore:
    kind: str
    reason: str = ""


Effect = Union[ReplaceSession, AppendChat, ReplacePot, ReplaceBoard, ReplaceLobby, Ignore]
