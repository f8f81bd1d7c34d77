# partyclient/transport/envelope.py
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from partyclient.domain.errors import DecodeError, EncodeError


class Envelope(BaseModel):
    """
    Wire wrapper for every message, both directions: {"kind": str, "data": str}.
    `data` is itself JSON text (double encoding). Extra top-level keys such as
    `player_id` are kept.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    kind: str
    data: str = ""

    def payload(self) -> Any:
        """Inner decode of `data`. Raises DecodeError."""
        try:
            return json.loads(self.data)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"inner data is not JSON: {e}", kind=self.kind) from e


def decode(raw: str | bytes) -> Envelope:
    """
    raw frame -> Envelope.
    Raises DecodeError if raw is not a JSON object with a string `kind`.
    """
    try:
        obj = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DecodeError(f"frame is not JSON: {e}") from e

    if not isinstance(obj, dict):
        raise DecodeError("frame is not a JSON object")

    kind = obj.get("kind")
    if not isinstance(kind, str):
        raise DecodeError("missing/invalid kind")

    data = obj.get("data", "")
    if data is None:
        data = ""
    elif not isinstance(data, str):
        # some frames carry data un-encoded; re-encode so payload() stays uniform
        data = json.dumps(data)

    extras = {k: v for k, v in obj.items() if k not in ("kind", "data")}
    return Envelope(kind=kind, data=data, **extras)


def _to_jsonable(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json")
    return payload


def encode(kind: str, payload: Any) -> str:
    """
    (kind, payload) -> '{"kind": kind, "data": "<payload as JSON text>"}'.
    Raises EncodeError; callers decide recovery.
    """
    try:
        data = json.dumps(_to_jsonable(payload))
        return json.dumps({"kind": kind, "data": data})
    except (TypeError, ValueError) as e:
        raise EncodeError(f"payload not serializable: {e}", kind=kind) from e


def encode_raw(kind: str, data: Any, **extra: Any) -> str:
    """
    Frame whose `data` is placed as-is (not JSON text), plus top-level extras.
    Used where the server reads data un-encoded (set_attempt, anagram_attempt).
    """
    frame: Dict[str, Any] = {"kind": kind, "data": _to_jsonable(data)}
    for k, v in extra.items():
        frame[k] = v
    try:
        return json.dumps(frame)
    except (TypeError, ValueError) as e:
        raise EncodeError(f"frame not serializable: {e}", kind=kind) from e


def maybe_payload(env: Envelope) -> Optional[Any]:
    """Inner decode that returns None instead of raising."""
    try:
        return env.payload()
    except DecodeError:
        return None
