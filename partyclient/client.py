# partyclient/client.py
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from partyclient.domain.common.types import ConnectionState, Scope, Variant
from partyclient.domain.errors import DecodeError
from partyclient.domain.reconciler import ClientView, StateReconciler
from partyclient.domain.selection import CardSelection
from partyclient.logging_config import get_logger
from partyclient.settings import Settings
from partyclient.store.name_store import NameStore
from partyclient.transport.commands import CommandEmitter
from partyclient.transport.connection import LOBBY_PATH, ConnectionManager, Connector, game_path
from partyclient.transport.dispatcher import Dispatcher
from partyclient.transport.envelope import decode

logger = get_logger(__name__)

RenderCallback = Callable[[ClientView], None]
PostUpdate = Callable[[], None]
NamePrompt = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class _ClientBase:
    """
    Wiring shared by lobby and game clients:
    frame -> decode -> dispatch -> reconcile -> render.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        scope: Scope,
        name_store: NameStore,
        render: Optional[RenderCallback] = None,
        post_update: Optional[PostUpdate] = None,
        connector: Optional[Connector] = None,
    ) -> None:
        self.settings = settings
        self.name_store = name_store
        self.render = render
        self.post_update = post_update

        self.dispatcher = Dispatcher(scope)
        self.reconciler = StateReconciler()
        self.connection = ConnectionManager(
            settings,
            name_store=name_store,
            on_message=self.handle_raw,
            on_state=self._on_state,
            connector=connector,
        )
        self.commands = CommandEmitter(self.connection)

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    def view(self) -> ClientView:
        return self.reconciler.view(self.connection.state)

    async def display_name(self) -> str:
        return await self.name_store.get_name() or self.settings.DEFAULT_PLAYER_NAME

    async def ensure_name(self, prompt: Optional[NamePrompt] = None) -> Optional[str]:
        """
        Cached display name, asking `prompt` when none is stored.
        Returns None when there is still no usable name.
        """
        name = await self.name_store.get_name()
        if name is not None or prompt is None:
            return name
        answer = prompt()
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer or not str(answer).strip():
            return None
        return await self.name_store.set_name(str(answer))

    # ----------------------------
    # Inbound
    # ----------------------------
    def handle_raw(self, raw: str) -> bool:
        """One inbound frame, run to completion. Returns True when the view changed."""
        try:
            env = decode(raw)
        except DecodeError as e:
            logger.warning("Dropped malformed frame", error=str(e))
            return False

        effect = self.dispatcher.dispatch(env)
        changed = self.reconciler.apply(effect)
        if changed:
            self._publish()
        return changed

    def _on_state(self, state: ConnectionState) -> None:
        if state == "ERRORED":
            logger.warning("Transport error, dropping session", endpoint=self.connection.endpoint)
            self._drop_session()
        self._publish()

    def _drop_session(self) -> None:
        self.reconciler.reset()

    def _publish(self) -> None:
        view = self.view()
        if self.render is not None:
            try:
                self.render(view)
            except Exception:
                logger.exception("Render callback failed")
        if self.post_update is not None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                self._run_post_update()
            else:
                loop.call_soon(self._run_post_update)

    def _run_post_update(self) -> None:
        try:
            self.post_update()
        except Exception:
            logger.exception("Post-update hook failed")

    async def close(self) -> None:
        await self.connection.close()
        self._drop_session()
        self._publish()

    async def __aenter__(self) -> Any:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class GameClient(_ClientBase):
    """One game session of a fixed variant ("set" or "anagrams")."""

    def __init__(
        self,
        settings: Settings,
        *,
        variant: Variant,
        name_store: NameStore,
        render: Optional[RenderCallback] = None,
        post_update: Optional[PostUpdate] = None,
        connector: Optional[Connector] = None,
    ) -> None:
        super().__init__(
            settings,
            scope=variant,
            name_store=name_store,
            render=render,
            post_update=post_update,
            connector=connector,
        )
        self.variant = variant
        self.game_id: Optional[str] = None
        self.selection = CardSelection()

    async def join(self, game_id: str) -> None:
        """Tear down any previous game socket, open /game/ws/{id} and send the join handshake."""
        if self.game_id is not None and self.game_id != game_id:
            self._drop_session()
        self.selection.clear()
        self.game_id = str(game_id)
        await self.connection.connect(game_path(self.game_id), join=True)

    async def leave(self) -> None:
        await self.close()
        self.game_id = None

    def _drop_session(self) -> None:
        super()._drop_session()
        self.selection.clear()

    async def _player_id(self) -> Optional[str]:
        session = self.reconciler.session
        if session is None:
            return None
        player = session.player_by_name(await self.display_name())
        return player.id if player is not None else None

    # ----------------------------
    # Outbound
    # ----------------------------
    async def send_chat(self, text: str) -> bool:
        return await self.commands.chat(await self.display_name(), text)

    async def select_card(self, index: int) -> bool:
        """Toggle a board position; the third pick sends a set_attempt."""
        if self.variant != "set":
            return False
        sent = await self.commands.select_card(self.selection, index, await self._player_id())
        self._publish()
        return sent

    async def attempt_word(self, word: str) -> bool:
        if self.variant != "anagrams":
            return False
        sender = await self.display_name()
        return await self.commands.anagram_attempt(word, await self._player_id(), sender=sender)

    def dismiss_summary(self) -> None:
        self.reconciler.dismiss_summary()
        self._publish()


class LobbyClient(_ClientBase):
    """Lobby socket: listing, creating and deleting games. No join handshake."""

    def __init__(
        self,
        settings: Settings,
        *,
        name_store: NameStore,
        render: Optional[RenderCallback] = None,
        post_update: Optional[PostUpdate] = None,
        connector: Optional[Connector] = None,
    ) -> None:
        super().__init__(
            settings,
            scope="lobby",
            name_store=name_store,
            render=render,
            post_update=post_update,
            connector=connector,
        )

    async def connect(self) -> None:
        await self.connection.connect(LOBBY_PATH, join=False)
        await self.commands.list_games()

    async def list_games(self) -> bool:
        return await self.commands.list_games()

    async def create_game(self, name: str, game_type: Variant = "set") -> bool:
        return await self.commands.create_game(name, await self.display_name(), game_type)

    async def delete_game(self, game_id: str) -> bool:
        return await self.commands.delete_game(game_id)

    async def join_game(self, game_id: str) -> bool:
        return await self.commands.join_game(game_id, await self.display_name())
