# partyclient/transport/dispatcher.py
from __future__ import annotations

from pydantic import ValidationError

from partyclient.domain.common.types import Scope
from partyclient.domain.effects import (
    AppendChat,
    Effect,
    Ignore,
    ReplaceBoard,
    ReplaceLobby,
    ReplacePot,
    ReplaceSession,
)
from partyclient.domain.errors import DecodeError, ProtocolError
from partyclient.logging_config import get_logger
from partyclient.transport.envelope import Envelope
from partyclient.transport.protocols import (
    InBoard,
    InChat,
    InGamesList,
    InNewTile,
    InSnapshot,
    parse_incoming,
)

logger = get_logger(__name__)


class Dispatcher:
    """
    Routing table from envelope kind to a state effect, one per scope
    ("set", "anagrams", "lobby").
    Pure: never touches session state and never raises for bad input.

    NOTE: No socket usage and no game rules here.
    """

    def __init__(self, scope: Scope):
        self.scope = scope

    def dispatch(self, env: Envelope) -> Effect:
        try:
            return self._route(env, parse_incoming(env, self.scope))
        except DecodeError as e:
            logger.warning("Dropped message with malformed data", kind=env.kind, scope=self.scope, error=str(e))
            return Ignore(kind=env.kind, reason=e.code)
        except ProtocolError as e:
            logger.info("Ignored message", kind=env.kind, scope=self.scope, error=e.message)
            return Ignore(kind=env.kind, reason=e.code)
        except ValidationError as e:
            logger.warning(
                "Dropped message missing required fields",
                kind=env.kind,
                scope=self.scope,
                errors=e.error_count(),
            )
            return Ignore(kind=env.kind, reason=ProtocolError.code)

    def _route(self, env: Envelope, msg) -> Effect:
        if isinstance(msg, InSnapshot):
            return ReplaceSession(session=msg.to_session(), kind=env.kind, presence=msg.presence)

        if isinstance(msg, InChat):
            return AppendChat(message=msg.to_message())

        if isinstance(msg, InNewTile):
            return ReplacePot(letters=tuple(msg.pot))

        if isinstance(msg, InBoard):
            return ReplaceBoard(cards=tuple(msg.board))

        if isinstance(msg, InGamesList):
            return ReplaceLobby(entries=tuple(msg.games))

        # parsed but not routed
        logger.info("No route for message", kind=env.kind, scope=self.scope)
        return Ignore(kind=env.kind, reason="NOT_IMPLEMENTED")
