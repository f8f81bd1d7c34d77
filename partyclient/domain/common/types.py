# partyclient/domain/common/types.py
from __future__ import annotations

from typing import Literal

Variant = Literal["set", "anagrams"]
Scope = Literal["set", "anagrams", "lobby"]

GameStateName = Literal["waiting", "active", "paused", "challenge", "game_over"]
MessageType = Literal["info", "system", "success", "error"]
Presence = Literal["joined", "left"]

ConnectionState = Literal["DISCONNECTED", "CONNECTING", "OPEN", "CLOSED", "ERRORED"]

SYSTEM_SENDER = "System"

# server spells the running state "in_progress"; a fresh game may send ""
_STATE_ALIASES = {
    "": "waiting",
    "waiting": "waiting",
    "in_progress": "active",
    "active": "active",
    "paused": "paused",
    "challenge": "challenge",
    "game_over": "game_over",
}


def normalize_state(raw: object) -> GameStateName:
    """Map the server's current_state string onto GameStateName. Unknown -> waiting."""
    if not isinstance(raw, str):
        return "waiting"
    return _STATE_ALIASES.get(raw.strip().lower(), "waiting")  # type: ignore[return-value]
