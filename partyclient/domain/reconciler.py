# partyclient/domain/reconciler.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from partyclient.domain.common.types import ConnectionState, Presence
from partyclient.domain.effects import (
    AppendChat,
    Effect,
    Ignore,
    ReplaceBoard,
    ReplaceLobby,
    ReplacePot,
    ReplaceSession,
)
from partyclient.domain.matching import exists_set
from partyclient.logging_config import get_logger
from partyclient.store.models import (
    AnagramsSession,
    AnySession,
    ChatMessage,
    LobbyEntry,
    SetSession,
)

logger = get_logger(__name__)


def presence_message(presence: Presence) -> ChatMessage:
    return ChatMessage.system(f"A player {presence} the game.")


@dataclass(frozen=True)
class ClientView:
    """
    Read-only snapshot handed to render collaborators after every change.
    Collaborators must not mutate it.
    """
    session: Optional[AnySession] = None
    chat: Tuple[ChatMessage, ...] = ()
    lobby: Tuple[LobbyEntry, ...] = ()
    show_summary: bool = False
    set_available: Optional[bool] = None
    connection_state: ConnectionState = "DISCONNECTED"


@dataclass
class _State:
    session: Optional[AnySession] = None
    lobby: Tuple[LobbyEntry, ...] = ()
    show_summary: bool = False
    last_state: Optional[str] = None
    set_available: Optional[bool] = None


class StateReconciler:
    """
    Folds dispatcher effects into the single local session, in arrival order.
    Sole writer of session state; everything else reads `view()`.
    """

    def __init__(self) -> None:
        self._s = _State()

    # ----------------------------
    # Read side
    # ----------------------------
    @property
    def session(self) -> Optional[AnySession]:
        return self._s.session

    @property
    def show_summary(self) -> bool:
        return self._s.show_summary

    @property
    def set_available(self) -> Optional[bool]:
        return self._s.set_available

    @property
    def lobby(self) -> Tuple[LobbyEntry, ...]:
        return self._s.lobby

    def view(self, connection_state: ConnectionState = "DISCONNECTED") -> ClientView:
        session = self._s.session
        chat = tuple(session.chat or ()) if session is not None else ()
        return ClientView(
            session=session,
            chat=chat,
            lobby=self._s.lobby,
            show_summary=self._s.show_summary,
            set_available=self._s.set_available,
            connection_state=connection_state,
        )

    # ----------------------------
    # Write side
    # ----------------------------
    def apply(self, effect: Effect) -> bool:
        """Apply one effect. Returns True when visible state changed."""
        if isinstance(effect, ReplaceSession):
            return self._replace_session(effect)
        if isinstance(effect, AppendChat):
            return self._append_chat(effect.message)
        if isinstance(effect, ReplacePot):
            return self._replace_pot(effect.letters)
        if isinstance(effect, ReplaceBoard):
            return self._replace_board(effect)
        if isinstance(effect, ReplaceLobby):
            self._s.lobby = tuple(effect.entries)
            return True
        if isinstance(effect, Ignore):
            return False
        logger.warning("Unhandled effect", effect=type(effect).__name__)
        return False

    def dismiss_summary(self) -> None:
        self._s.show_summary = False

    def reset(self) -> None:
        """Drop the session (teardown / transport error). Lobby list survives."""
        lobby = self._s.lobby
        self._s = _State(lobby=lobby)

    # ----------------------------
    # Helpers
    # ----------------------------
    def _replace_session(self, effect: ReplaceSession) -> bool:
        prev = self._s.session
        incoming = effect.session

        if incoming.chat is not None:
            chat = list(incoming.chat)
        elif prev is not None and prev.chat is not None:
            chat = list(prev.chat)
        else:
            chat = []

        if effect.presence is not None:
            # checked against the chat that will be shown, so a presence snapshot
            # without chat replayed twice still adds one line
            trailing = chat[-1] if chat else None
            if trailing is None or not trailing.is_system:
                chat.append(presence_message(effect.presence))

        session = incoming.model_copy(update={"chat": chat})
        self._s.session = session
        self._track_game_over(session)
        if isinstance(session, SetSession):
            self._check_board(session)
        return True

    def _append_chat(self, message: ChatMessage) -> bool:
        session = self._s.session
        if session is None:
            logger.info("Dropped chat before init", sender=message.sender)
            return False
        chat = list(session.chat or []) + [message]
        self._s.session = session.model_copy(update={"chat": chat})
        return True

    def _replace_pot(self, letters: Tuple[str, ...]) -> bool:
        session = self._s.session
        if session is None:
            logger.info("Dropped pot update before init", letters=len(letters))
            return False
        if not isinstance(session, AnagramsSession):
            logger.warning("Pot update for non-anagrams session", session_id=session.id)
            return False
        self._s.session = session.model_copy(update={"pot": list(letters)})
        return True

    def _replace_board(self, effect: ReplaceBoard) -> bool:
        session = self._s.session
        if session is None:
            logger.info("Dropped board update before init", cards=len(effect.cards))
            return False
        if not isinstance(session, SetSession):
            logger.warning("Board update for non-set session", session_id=session.id)
            return False
        session = session.model_copy(update={"board": list(effect.cards)})
        self._s.session = session
        self._check_board(session)
        return True

    def _track_game_over(self, session: AnySession) -> None:
        # latch on the transition into game_over only
        if session.is_over and self._s.last_state != "game_over":
            self._s.show_summary = True
            logger.info("Game over", session_id=session.id)
        self._s.last_state = session.current_state

    def _check_board(self, session: SetSession) -> None:
        available = exists_set(session.board)
        if available != self._s.set_available:
            logger.debug("Board set availability", session_id=session.id, available=available)
        self._s.set_available = available
