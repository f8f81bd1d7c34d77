# partyclient/domain/errors.py
from __future__ import annotations


class ClientError(Exception):
    """Base for every recoverable error raised inside the client core."""

    code = "CLIENT_ERROR"

    def __init__(self, message: str = "", *, kind: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind

    def __str__(self) -> str:
        if self.kind:
            return f"{self.code} ({self.kind}): {self.message}"
        return f"{self.code}: {self.message}"


class DecodeError(ClientError):
    """Malformed envelope or malformed inner JSON."""

    code = "BAD_MESSAGE"


class EncodeError(ClientError):
    """Outbound payload could not be serialized."""

    code = "BAD_PAYLOAD"


class ProtocolError(ClientError):
    """Unrecognized kind, or a recognized kind missing required fields."""

    code = "BAD_PROTOCOL"


class PreconditionError(ClientError):
    """Command emitted while the connection is not open, or with a bad selection."""

    code = "PRECONDITION"


class TransportError(ClientError):
    """Socket failed to open, errored, or closed abnormally."""

    code = "TRANSPORT"
