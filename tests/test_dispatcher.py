import json

from partyclient.domain.effects import AppendChat, Ignore, ReplaceBoard, ReplaceLobby, ReplacePot, ReplaceSession
from partyclient.transport.dispatcher import Dispatcher
from partyclient.transport.envelope import decode
from tests.fakes import SET_BOARD, frame, set_snapshot


def test_unknown_kind_is_ignored():
    effect = Dispatcher("set").dispatch(decode(frame("mystery", {})))
    assert isinstance(effect, Ignore)
    assert effect.reason == "BAD_PROTOCOL"


def test_malformed_inner_data_is_ignored():
    env = decode(json.dumps({"kind": "init", "data": "{not json"}))
    effect = Dispatcher("set").dispatch(env)
    assert isinstance(effect, Ignore)
    assert effect.reason == "BAD_MESSAGE"


def test_missing_fields_is_ignored():
    effect = Dispatcher("anagrams").dispatch(decode(frame("init", {"pot": []})))
    assert isinstance(effect, Ignore)
    assert effect.reason == "BAD_PROTOCOL"


def test_snapshot_routes_with_presence():
    effect = Dispatcher("set").dispatch(decode(frame("player_joined", set_snapshot(SET_BOARD))))
    assert isinstance(effect, ReplaceSession)
    assert effect.kind == "player_joined"
    assert effect.presence == "joined"


def test_other_routes():
    d = Dispatcher("anagrams")
    assert isinstance(d.dispatch(decode('{"kind":"new_tile","data":"[\\"A\\",\\"B\\",\\"C\\"]"}')), ReplacePot)
    assert isinstance(d.dispatch(decode(frame("chat", {"sender": "Bo", "text": "yo"}))), AppendChat)
    assert isinstance(d.dispatch(decode(frame("games_list", []))), ReplaceLobby)

    effect = Dispatcher("set").dispatch(decode(frame("set_found", {"board": SET_BOARD})))
    assert isinstance(effect, ReplaceBoard)
    assert len(effect.cards) == 4


def test_bad_card_in_board_is_ignored():
    effect = Dispatcher("set").dispatch(decode(frame("set_found", [[0, 0, 0, 5]])))
    assert isinstance(effect, Ignore)
