# partyclient/domain/common/fsm.py
from __future__ import annotations

from partyclient.domain.common.types import ConnectionState


def can_transition_to(current: ConnectionState, target: ConnectionState) -> bool:
    """
    Validate connection state transitions.
    CLOSED/ERRORED only leave through a fresh connect (or teardown for ERRORED).
    """
    transitions: dict[ConnectionState, list[ConnectionState]] = {
        "DISCONNECTED": ["CONNECTING"],
        "CONNECTING": ["OPEN", "CLOSED", "ERRORED"],
        "OPEN": ["CLOSED", "ERRORED"],
        "CLOSED": ["CONNECTING"],
        "ERRORED": ["CONNECTING", "CLOSED"],
    }
    return target in transitions.get(current, [])


def is_live(state: ConnectionState) -> bool:
    """A socket may exist and must be torn down."""
    return state in ("CONNECTING", "OPEN", "ERRORED")
