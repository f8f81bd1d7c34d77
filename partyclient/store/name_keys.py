# partyclient/store/name_keys.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NK:
    """
    Redis key builder for client-local persisted values.
    One namespace per installed client.
    """
    namespace: str

    def display_name(self, key: str = "rs_name") -> str:
        return f"{self.namespace}:{key}"  # STRING
