# partyclient/transport/connection.py
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

import websockets
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from partyclient.domain.common.fsm import can_transition_to, is_live
from partyclient.domain.common.types import ConnectionState
from partyclient.domain.errors import PreconditionError, TransportError
from partyclient.logging_config import get_logger
from partyclient.settings import Settings
from partyclient.store.name_store import NameStore
from partyclient.transport.protocols import OutJoinPlayer

logger = get_logger(__name__)

LOBBY_PATH = "/lobby"

MessageCallback = Callable[[str], None]
StateCallback = Callable[[ConnectionState], None]
Connector = Callable[..., Awaitable[Any]]


def game_path(game_id: str) -> str:
    return f"/game/ws/{game_id}"


class ConnectionManager:
    """
    Owns the single live socket: connect, listen, send, teardown.
    - at most one socket; a new connect tears the previous one down first
    - frames are delivered to `on_message` in arrival order
    Transport-only: no decoding, no session state.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        name_store: NameStore,
        on_message: MessageCallback,
        on_state: Optional[StateCallback] = None,
        connector: Optional[Connector] = None,
    ) -> None:
        self.settings = settings
        self.name_store = name_store
        self._handler = on_message
        self._on_message: Optional[MessageCallback] = None
        self._on_state = on_state
        self._connector: Connector = connector or websockets.connect

        self._state: ConnectionState = "DISCONNECTED"
        self._ws: Any = None
        self._listener: Optional[asyncio.Task] = None
        # bumped by every connect and close; a stale connect must not adopt its socket
        self._generation = 0
        self.endpoint: Optional[str] = None
        self.join_sent = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == "OPEN"

    def endpoint_url(self, path: str) -> str:
        scheme = "wss" if self.settings.SERVER_SECURE else "ws"
        return f"{scheme}://{self.settings.SERVER_HOST}:{self.settings.SERVER_PORT}{path}"

    # ----------------------------
    # Lifecycle
    # ----------------------------
    async def connect(self, path: str, *, join: bool = True) -> None:
        """
        Open `path`, replacing any live socket. With `join`, sends the
        join_player handshake carrying the cached display name.
        Raises TransportError when the socket cannot be opened.
        """
        if is_live(self._state) or self._ws is not None:
            await self.close()

        self._generation += 1
        generation = self._generation
        url = self.endpoint_url(path)
        self.endpoint = url
        self.join_sent = False
        self._set_state("CONNECTING")
        logger.info("Connecting", endpoint=url)

        try:
            ws = await self._connector(url, open_timeout=self.settings.OPEN_TIMEOUT_SEC)
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            if generation == self._generation:
                self._set_state("ERRORED")
            logger.warning("Connect failed", endpoint=url, error=str(e))
            raise TransportError(str(e) or type(e).__name__) from e

        if generation != self._generation:
            # torn down while the handshake was in flight
            logger.info("Discarding socket opened after teardown", endpoint=url)
            await self._close_socket(ws)
            return

        self._ws = ws
        self._on_message = self._handler
        self._set_state("OPEN")
        self._listener = asyncio.create_task(self._listen(ws))

        if join:
            await self._join(generation)

    async def close(self) -> None:
        """
        Unconditional teardown: cancel the listener, close the socket.
        Safe in any state, including mid-connect and errored.
        """
        self._generation += 1
        self._on_message = None
        ws, self._ws = self._ws, None
        task, self._listener = self._listener, None

        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if ws is not None:
            await self._close_socket(ws)

        if is_live(self._state):
            self._set_state("CLOSED")
        self.join_sent = False

    @asynccontextmanager
    async def scoped(self, path: str, *, join: bool = True) -> AsyncIterator["ConnectionManager"]:
        """Connection held for the duration of the block, released on every exit path."""
        try:
            await self.connect(path, join=join)
            yield self
        finally:
            await self.close()

    # ----------------------------
    # Send
    # ----------------------------
    async def send(self, raw: str) -> None:
        """Raises PreconditionError unless OPEN."""
        if self._state != "OPEN" or self._ws is None:
            raise PreconditionError("connection is not open", kind=self._state)
        try:
            await self._ws.send(raw)
        except (OSError, websockets.exceptions.WebSocketException) as e:
            logger.warning("Send failed", endpoint=self.endpoint, error=str(e))
            self._set_state("ERRORED")
            raise TransportError(str(e) or type(e).__name__) from e

    async def _close_socket(self, ws: Any) -> None:
        try:
            await ws.close()
        except (OSError, websockets.exceptions.WebSocketException) as e:
            logger.debug("Socket close raised", endpoint=self.endpoint, error=str(e))

    async def _join(self, generation: int) -> None:
        name = await self.name_store.get_name() or self.settings.DEFAULT_PLAYER_NAME
        if generation != self._generation:
            return
        await self.send(OutJoinPlayer(name=name).to_wire())
        self.join_sent = True
        logger.info("Join sent", endpoint=self.endpoint, name=name)

    # ----------------------------
    # Receive
    # ----------------------------
    async def _listen(self, ws: Any) -> None:
        try:
            async for raw in ws:
                if ws is not self._ws:
                    # replaced while a frame was in flight
                    return
                if isinstance(raw, bytes):
                    raw = raw.decode("utf-8", errors="replace")
                self._deliver(raw)
        except ConnectionClosedOK:
            pass
        except (ConnectionClosedError, OSError) as e:
            if ws is self._ws:
                logger.warning("Connection lost", endpoint=self.endpoint, error=str(e))
                self._set_state("ERRORED")
            return

        if ws is self._ws:
            logger.info("Connection closed by server", endpoint=self.endpoint)
            self._set_state("CLOSED")

    def _deliver(self, raw: str) -> None:
        cb = self._on_message
        if cb is None:
            return
        try:
            cb(raw)
        except Exception:
            logger.exception("Message callback failed", endpoint=self.endpoint)

    def _set_state(self, target: ConnectionState) -> None:
        if target == self._state:
            return
        if not can_transition_to(self._state, target):
            logger.warning("Invalid connection transition", current=self._state, target=target)
            return
        self._state = target
        if self._on_state is not None:
            try:
                self._on_state(target)
            except Exception:
                logger.exception("State callback failed", state=target)
