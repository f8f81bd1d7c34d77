import json

import pytest

from partyclient.domain.selection import CardSelection
from partyclient.transport.commands import CommandEmitter
from partyclient.transport.connection import ConnectionManager
from tests.fakes import drain


def test_selection_toggle_and_cap():
    sel = CardSelection()
    assert sel.toggle(0) is None
    assert sel.toggle(0) is None
    assert len(sel) == 0

    sel.toggle(1)
    sel.toggle(4)
    assert sel.toggle(2) == (1, 4, 2)
    # already full: a fourth pick is refused
    assert sel.toggle(5) is None
    assert sel.indices == (1, 4, 2)


async def _open(settings, name_store, connector):
    conn = ConnectionManager(settings, name_store=name_store, on_message=lambda raw: None, connector=connector)
    await conn.connect("/game/ws/7", join=False)
    return conn


@pytest.mark.asyncio
async def test_third_selection_emits_one_attempt(settings, name_store, connector):
    conn = await _open(settings, name_store, connector)
    emitter = CommandEmitter(conn)
    sel = CardSelection()

    assert not await emitter.select_card(sel, 0, "1")
    assert not await emitter.select_card(sel, 3, "1")
    assert connector.last.sent == []

    assert await emitter.select_card(sel, 5, "1")
    assert connector.last.sent_kinds() == ["set_attempt"]
    assert json.loads(connector.last.sent[0])["data"] == [0, 3, 5]
    assert len(sel) == 0
    await conn.close()


@pytest.mark.asyncio
async def test_commands_dropped_when_not_open(settings, name_store, connector):
    conn = ConnectionManager(settings, name_store=name_store, on_message=lambda raw: None, connector=connector)
    emitter = CommandEmitter(conn)
    sel = CardSelection()

    assert not await emitter.chat("Ann", "hi")
    assert not await emitter.list_games()
    sel.toggle(0)
    sel.toggle(1)
    assert not await emitter.select_card(sel, 2, "1")
    # dropped attempt leaves the selection alone
    assert sel.indices == (0, 1, 2)


@pytest.mark.asyncio
async def test_chat_and_anagram_commands(settings, name_store, connector):
    conn = await _open(settings, name_store, connector)
    emitter = CommandEmitter(conn)

    assert not await emitter.chat("Ann", "   ")
    assert await emitter.anagram_attempt(" cats ", "1", sender="Ann")
    assert await emitter.anagram_attempt("/pause", "1", sender="Ann")
    assert await emitter.challenge("Ann")
    assert await emitter.end_game("Ann")

    frames = [json.loads(s) for s in connector.last.sent]
    assert frames[0] == {"kind": "anagram_attempt", "data": "cats", "player_id": "1"}
    assert [f["kind"] for f in frames[1:]] == ["chat", "chat", "chat"]
    assert [json.loads(f["data"])["message"] for f in frames[1:]] == ["/pause", "/challenge", "/gameover"]
    await conn.close()


@pytest.mark.asyncio
async def test_lobby_commands(settings, name_store, connector):
    conn = await _open(settings, name_store, connector)
    emitter = CommandEmitter(conn)

    assert await emitter.create_game("Friday", "Ann", "anagrams")
    assert not await emitter.create_game("   ", "Ann")
    assert await emitter.join_game("3", "Ann")
    assert await emitter.delete_game("3")
    await drain()
    assert connector.last.sent_kinds() == ["create_game", "join_game", "delete_game"]
    await conn.close()
