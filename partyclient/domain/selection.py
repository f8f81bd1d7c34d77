# partyclient/domain/selection.py
from __future__ import annotations

from typing import List, Optional, Tuple

SET_SIZE = 3


class CardSelection:
    """
    Local-only select/deselect state for Set board positions.
    Never more than three; the owner clears it once an attempt is sent.
    """

    def __init__(self) -> None:
        self._picked: List[int] = []

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(self._picked)

    def __len__(self) -> int:
        return len(self._picked)

    def toggle(self, index: int) -> Optional[Tuple[int, int, int]]:
        """
        Deselect if picked, else pick while fewer than three are held.
        Returns the triple once exactly three distinct positions are held.
        """
        if index < 0:
            return None
        if index in self._picked:
            self._picked.remove(index)
            return None
        if len(self._picked) >= SET_SIZE:
            return None
        self._picked.append(index)
        return self.complete()

    def complete(self) -> Optional[Tuple[int, int, int]]:
        if len(self._picked) != SET_SIZE:
            return None
        a, b, c = self._picked
        return (a, b, c)

    def clear(self) -> None:
        self._picked.clear()
