# partyclient/transport/commands.py
from __future__ import annotations

from typing import Optional

from pydantic import ValidationError

from partyclient.domain.common.types import Variant
from partyclient.domain.errors import EncodeError, PreconditionError, TransportError
from partyclient.domain.selection import CardSelection
from partyclient.logging_config import get_logger
from partyclient.transport.connection import ConnectionManager
from partyclient.transport.protocols import (
    OutAnagramAttempt,
    OutChat,
    OutCreateGame,
    OutDeleteGame,
    OutJoinGame,
    OutListGames,
    OutSetAttempt,
    OutgoingCommand,
)

logger = get_logger(__name__)

COMMAND_PREFIX = "/"
CMD_GAME_OVER = "/gameover"
CMD_PAUSE = "/pause"
CMD_CHALLENGE = "/challenge"
CMD_MAINTAIN = "/maintain"


def is_chat_command(text: str) -> bool:
    return text.startswith(COMMAND_PREFIX)


class CommandEmitter:
    """
    Outbound commands over the live connection.
    Every send checks OPEN first; a dropped command is logged, never queued
    and never retried. Methods return True when the frame was written.
    """

    def __init__(self, connection: ConnectionManager):
        self.connection = connection

    async def send(self, cmd: OutgoingCommand) -> bool:
        try:
            if not self.connection.is_open:
                raise PreconditionError("connection is not open", kind=cmd.kind)
            await self.connection.send(cmd.to_wire())
        except PreconditionError as e:
            logger.warning("Dropped command", kind=cmd.kind, state=self.connection.state, reason=e.code)
            return False
        except (EncodeError, TransportError) as e:
            logger.warning("Command not sent", kind=cmd.kind, reason=e.code, error=e.message)
            return False
        logger.debug("Command sent", kind=cmd.kind)
        return True

    # ---- Lobby ----

    async def create_game(self, name: str, creator: str, game_type: Variant = "set") -> bool:
        try:
            cmd = OutCreateGame(name=name.strip(), creator=creator, game_type=game_type)
        except ValidationError as e:
            logger.warning("Invalid create_game", errors=e.error_count())
            return False
        return await self.send(cmd)

    async def join_game(self, game_id: str, player: str) -> bool:
        return await self.send(OutJoinGame(id=game_id, player=player))

    async def delete_game(self, game_id: str) -> bool:
        return await self.send(OutDeleteGame(id=game_id))

    async def list_games(self) -> bool:
        return await self.send(OutListGames())

    # ---- Game ----

    async def chat(self, sender: str, text: str) -> bool:
        message = (text or "").strip()
        if not message:
            return False
        return await self.send(OutChat(sender=sender, message=message))

    async def set_attempt(self, indices, player_id: Optional[str]) -> bool:
        try:
            cmd = OutSetAttempt(indices=list(indices), player_id=player_id)
        except ValidationError:
            logger.warning("Dropped set_attempt", indices=list(indices), reason=PreconditionError.code)
            return False
        return await self.send(cmd)

    async def select_card(self, selection: CardSelection, index: int, player_id: Optional[str]) -> bool:
        """
        Toggle a board position; the third distinct pick emits one set_attempt.
        Selection is cleared only when the attempt was actually sent.
        """
        triple = selection.toggle(index)
        if triple is None:
            return False
        sent = await self.set_attempt(triple, player_id)
        if sent:
            selection.clear()
        return sent

    async def anagram_attempt(self, word: str, player_id: Optional[str], *, sender: str = "") -> bool:
        """Input starting with "/" goes out as a chat command instead."""
        text = (word or "").strip()
        if not text:
            return False
        if is_chat_command(text):
            return await self.chat(sender, text)
        return await self.send(OutAnagramAttempt(word=text, player_id=player_id))

    # ---- Chat commands ----

    async def pause(self, sender: str) -> bool:
        return await self.chat(sender, CMD_PAUSE)

    async def challenge(self, sender: str) -> bool:
        return await self.chat(sender, CMD_CHALLENGE)

    async def maintain(self, sender: str) -> bool:
        return await self.chat(sender, CMD_MAINTAIN)

    async def end_game(self, sender: str) -> bool:
        return await self.chat(sender, CMD_GAME_OVER)
