import asyncio
import json

import pytest

from partyclient.domain.errors import PreconditionError, TransportError
from partyclient.settings import Settings
from partyclient.store.name_store import MemoryNameStore
from partyclient.transport.connection import LOBBY_PATH, ConnectionManager, game_path
from tests.fakes import FakeConnector, GatedConnector, drain


def _manager(settings, name_store, connector, received=None, states=None):
    return ConnectionManager(
        settings,
        name_store=name_store,
        on_message=(received.append if received is not None else lambda raw: None),
        on_state=(states.append if states is not None else None),
        connector=connector,
    )


def test_endpoint_url_scheme():
    conn = _manager(Settings(SERVER_SECURE=True, SERVER_HOST="h", SERVER_PORT=1), MemoryNameStore(), FakeConnector())
    assert conn.endpoint_url(game_path("9")) == "wss://h:1/game/ws/9"
    conn = _manager(Settings(SERVER_HOST="h", SERVER_PORT=1), MemoryNameStore(), FakeConnector())
    assert conn.endpoint_url(LOBBY_PATH) == "ws://h:1/lobby"


@pytest.mark.asyncio
async def test_connect_sends_join_with_cached_name(settings, name_store, connector):
    states = []
    conn = _manager(settings, name_store, connector, states=states)
    await conn.connect(game_path("7"))

    assert conn.state == "OPEN"
    assert conn.join_sent
    frame = json.loads(connector.last.sent[0])
    assert frame["kind"] == "join_player"
    assert json.loads(frame["data"]) == {"name": "Ann"}
    assert states == ["CONNECTING", "OPEN"]
    await conn.close()
    assert states[-1] == "CLOSED"


@pytest.mark.asyncio
async def test_join_defaults_to_anonymous(settings, connector):
    conn = _manager(settings, MemoryNameStore(), connector)
    await conn.connect(game_path("7"))
    assert json.loads(json.loads(connector.last.sent[0])["data"]) == {"name": "Anonymous"}
    await conn.close()


@pytest.mark.asyncio
async def test_frames_delivered_in_order(settings, name_store, connector):
    received = []
    conn = _manager(settings, name_store, connector, received=received)
    await conn.connect(LOBBY_PATH, join=False)
    connector.last.feed("one")
    connector.last.feed("two")
    await drain()
    assert received == ["one", "two"]
    await conn.close()


@pytest.mark.asyncio
async def test_reconnect_tears_down_previous_socket(settings, name_store, connector):
    received = []
    conn = _manager(settings, name_store, connector, received=received)
    await conn.connect(game_path("1"))
    first = connector.last
    await conn.connect(game_path("2"))
    second = connector.last

    assert first.closed
    assert not second.closed
    assert conn.endpoint.endswith("/game/ws/2")

    first.feed("stale")
    second.feed("fresh")
    await drain()
    assert received == ["fresh"]
    await conn.close()


@pytest.mark.asyncio
async def test_callback_failure_does_not_kill_listener(settings, name_store, connector):
    received = []

    def on_message(raw):
        if raw == "boom":
            raise RuntimeError("render broke")
        received.append(raw)

    conn = ConnectionManager(settings, name_store=name_store, on_message=on_message, connector=connector)
    await conn.connect(LOBBY_PATH, join=False)
    connector.last.feed("boom")
    connector.last.feed("ok")
    await drain()
    assert received == ["ok"]
    assert conn.state == "OPEN"
    await conn.close()


@pytest.mark.asyncio
async def test_server_close_and_error(settings, name_store, connector):
    conn = _manager(settings, name_store, connector)
    await conn.connect(LOBBY_PATH, join=False)
    connector.last.finish()
    await drain()
    assert conn.state == "CLOSED"

    await conn.connect(LOBBY_PATH, join=False)
    connector.last.fail()
    await drain()
    assert conn.state == "ERRORED"

    await conn.close()
    assert conn.state == "CLOSED"
    assert connector.last.closed


@pytest.mark.asyncio
async def test_connect_failure_is_errored(settings, name_store):
    conn = _manager(settings, name_store, FakeConnector(fail=True))
    with pytest.raises(TransportError):
        await conn.connect(LOBBY_PATH)
    assert conn.state == "ERRORED"
    await conn.close()
    assert conn.state == "CLOSED"


@pytest.mark.asyncio
async def test_send_requires_open(settings, name_store, connector):
    conn = _manager(settings, name_store, connector)
    with pytest.raises(PreconditionError):
        await conn.send("x")


@pytest.mark.asyncio
async def test_scoped_releases_on_error(settings, name_store, connector):
    conn = _manager(settings, name_store, connector)
    with pytest.raises(ValueError):
        async with conn.scoped(game_path("7")):
            assert conn.state == "OPEN"
            raise ValueError("navigated away")
    assert conn.state == "CLOSED"
    assert connector.last.closed


@pytest.mark.asyncio
async def test_close_while_connecting_discards_late_socket(settings, name_store):
    received = []
    connector = GatedConnector()
    conn = _manager(settings, name_store, connector, received=received)

    pending = asyncio.create_task(conn.connect(game_path("7")))
    await drain()
    assert conn.state == "CONNECTING"

    await conn.close()
    assert conn.state == "CLOSED"

    connector.gate.set()
    await pending
    ws = connector.last
    assert ws.closed
    assert ws.sent == []
    assert not conn.join_sent

    ws.feed("late frame")
    await drain()
    assert received == []
    assert conn.state == "CLOSED"


@pytest.mark.asyncio
async def test_reconnect_after_close_reattaches_callback(settings, name_store, connector):
    received = []
    conn = _manager(settings, name_store, connector, received=received)
    await conn.connect(LOBBY_PATH, join=False)
    await conn.close()
    await conn.connect(LOBBY_PATH, join=False)
    connector.last.feed("again")
    await drain()
    assert received == ["again"]
    await conn.close()
