# partyclient/domain/matching.py
from __future__ import annotations

from itertools import combinations
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from partyclient.store.models import AnagramsSession, Player

# Pure, deterministic helpers. No I/O, no session mutation.

SHAPES = ("oval", "squiggle", "diamond")
FILLINGS = ("filled", "lines", "clear")
COLORS = ("red", "green", "purple")
COUNTS = ("1", "2", "3")

BUNDLE_LEN = 3  # first three letters of a word score one point together


def is_valid_set(a: Sequence[int], b: Sequence[int], c: Sequence[int]) -> bool:
    """
    All-same-or-all-different on each of the 4 attributes, expressed as
    (a[i] + b[i] + c[i]) % 3 == 0 over indices in {0, 1, 2}.
    """
    for i in range(4):
        if (a[i] + b[i] + c[i]) % 3 != 0:
            return False
    return True


def find_set(board: Sequence[Sequence[int]]) -> Optional[Tuple[int, int, int]]:
    """Board positions of the first valid set, or None."""
    for i, j, k in combinations(range(len(board)), 3):
        if is_valid_set(board[i], board[j], board[k]):
            return (i, j, k)
    return None


def exists_set(board: Sequence[Sequence[int]]) -> bool:
    """
    Exhaustive O(n^3) search, short-circuits on the first match.
    Display hinting only; the server alone decides attempts.
    """
    return find_set(board) is not None


def card_label(card: Sequence[int]) -> Tuple[str, str, str, str]:
    return (SHAPES[card[0]], FILLINGS[card[1]], COLORS[card[2]], COUNTS[card[3]])


def score_word(word: str) -> int:
    """1 for the first three letters as a bundle, +1 per letter beyond the third."""
    if not word:
        return 0
    return 1 + max(0, len(word) - BUNDLE_LEN)


class BoardSummary(NamedTuple):
    word_count: int
    extra_letters: int
    total: int


def summarize_player_board(words: Iterable[str]) -> BoardSummary:
    words = [w or "" for w in words]
    return BoardSummary(
        word_count=len(words),
        extra_letters=sum(max(0, len(w) - BUNDLE_LEN) for w in words),
        total=sum(score_word(w) for w in words),
    )


class PlayerSummary(NamedTuple):
    player: Player
    words: List[str]
    summary: BoardSummary


def summarize_boards(session: AnagramsSession) -> List[PlayerSummary]:
    """Per-player Anagrams summaries for the game-over view, best total first."""
    rows = [
        PlayerSummary(player=pb.player, words=list(pb.words), summary=summarize_player_board(pb.words))
        for pb in session.players_boards
    ]
    return sorted(rows, key=lambda r: r.summary.total, reverse=True)


def rank_players(players: Iterable[Player]) -> List[Player]:
    """Players by score, highest first; ties keep server order."""
    return sorted(players, key=lambda p: p.score, reverse=True)
