from partyclient.domain.effects import AppendChat, Ignore, ReplaceBoard, ReplaceLobby, ReplacePot, ReplaceSession
from partyclient.domain.reconciler import StateReconciler
from partyclient.store.models import AnagramsSession, Card, ChatMessage, LobbyEntry, Player, SetSession
from tests.fakes import NO_SET_BOARD, SET_BOARD


def _set(board=SET_BOARD, state="active", chat=None):
    return SetSession(id="7", current_state=state, players=[Player(id="1", name="Ann")], board=board, chat=chat)


def _anagrams(pot=(), chat=None, state="active"):
    return AnagramsSession(id="7", current_state=state, players=[Player(id="1", name="Ann")], pot=list(pot), chat=chat)


def _msg(text, sender="Bo"):
    return ChatMessage(sender=sender, text=text)


def test_init_without_chat_starts_empty():
    rec = StateReconciler()
    assert rec.apply(ReplaceSession(_set()))
    assert rec.session.chat == []
    assert rec.set_available is True


def test_snapshot_without_chat_keeps_local_chat():
    rec = StateReconciler()
    rec.apply(ReplaceSession(_set(chat=[_msg("hi")])))
    rec.apply(AppendChat(_msg("again")))
    rec.apply(ReplaceSession(_set(board=NO_SET_BOARD), kind="paused"))
    assert [m.text for m in rec.session.chat] == ["hi", "again"]
    assert rec.set_available is False


def test_snapshot_chat_is_authoritative():
    rec = StateReconciler()
    rec.apply(ReplaceSession(_set(chat=[_msg("old")])))
    rec.apply(ReplaceSession(_set(chat=[_msg("server")])))
    assert [m.text for m in rec.session.chat] == ["server"]


def test_same_snapshot_twice_is_idempotent():
    rec = StateReconciler()
    snap = _set(chat=[_msg("hi")])
    rec.apply(ReplaceSession(snap))
    first = rec.view()
    rec.apply(ReplaceSession(snap))
    assert rec.view() == first


def test_presence_synthesized_once():
    rec = StateReconciler()
    rec.apply(ReplaceSession(_set(chat=[_msg("hi")])))
    rec.apply(ReplaceSession(_set(), kind="player_joined", presence="joined"))
    chat = rec.session.chat
    assert chat[-1].is_system
    assert chat[-1].text == "A player joined the game."

    # the server already put a system line at the end
    rec.apply(ReplaceSession(_set(chat=[_msg("hi"), ChatMessage.system("Ann joined")]), presence="joined"))
    assert [m.text for m in rec.session.chat] == ["hi", "Ann joined"]


def test_append_chat_before_init_dropped():
    rec = StateReconciler()
    assert not rec.apply(AppendChat(_msg("early")))
    assert rec.session is None


def test_pot_patch_only_touches_pot():
    rec = StateReconciler()
    assert not rec.apply(ReplacePot(("A", "B", "C")))
    assert rec.session is None

    rec.apply(ReplaceSession(_anagrams(pot="XY", chat=[_msg("hi")])))
    before = rec.session
    assert rec.apply(ReplacePot(("A", "B", "C")))
    after = rec.session
    assert after.pot == ["A", "B", "C"]
    assert after.players == before.players
    assert after.chat == before.chat


def test_pot_patch_ignored_for_set():
    rec = StateReconciler()
    rec.apply(ReplaceSession(_set()))
    assert not rec.apply(ReplacePot(("A",)))


def test_board_patch_rechecks_sets():
    rec = StateReconciler()
    rec.apply(ReplaceSession(_set()))
    assert rec.set_available is True
    rec.apply(ReplaceBoard(tuple(Card(array=c) for c in NO_SET_BOARD)))
    assert rec.set_available is False
    assert len(rec.session.board) == 3


def test_game_over_latches_on_transition_only():
    rec = StateReconciler()
    rec.apply(ReplaceSession(_set(state="active")))
    assert not rec.show_summary

    rec.apply(ReplaceSession(_set(state="game_over"), kind="game_over"))
    assert rec.show_summary

    rec.dismiss_summary()
    # repeated game_over snapshot does not reopen the summary
    rec.apply(ReplaceSession(_set(state="game_over"), kind="game_over"))
    assert not rec.show_summary


def test_lobby_and_reset():
    rec = StateReconciler()
    rec.apply(ReplaceLobby((LobbyEntry(id="1", name="g"),)))
    rec.apply(ReplaceSession(_set()))
    assert not rec.apply(Ignore(kind="x"))

    rec.reset()
    assert rec.session is None
    assert rec.set_available is None
    assert [e.id for e in rec.lobby] == ["1"]
    assert rec.view("CLOSED").connection_state == "CLOSED"


def test_game_over_signal_survives_later_states_until_dismissed():
    rec = StateReconciler()
    rec.apply(ReplaceSession(_set(state="active")))
    rec.apply(ReplaceSession(_set(state="game_over"), kind="game_over"))
    assert rec.show_summary

    rec.apply(ReplaceSession(_set(state="active"), kind="init"))
    assert rec.show_summary
    assert rec.view().show_summary

    rec.dismiss_summary()
    assert not rec.show_summary


def test_presence_replay_without_snapshot_chat_does_not_duplicate():
    rec = StateReconciler()
    rec.apply(ReplaceSession(_anagrams(chat=[_msg("hi")])))
    joined = ReplaceSession(_anagrams(), kind="player_joined", presence="joined")
    rec.apply(joined)
    rec.apply(joined)
    assert [m.text for m in rec.session.chat] == ["hi", "A player joined the game."]
