# partyclient/store/name_store.py
from __future__ import annotations

from typing import Optional, Protocol

from redis.asyncio import Redis

from partyclient.logging_config import get_logger
from partyclient.store.name_keys import NK

logger = get_logger(__name__)

MAX_NAME_LEN = 24


def clean_display_name(value: Optional[str]) -> Optional[str]:
    """Trim; empty means absent. Overlong names are cut to MAX_NAME_LEN."""
    if value is None:
        return None
    v = value.strip()
    if not v:
        return None
    return v[:MAX_NAME_LEN]


class NameStore(Protocol):
    async def get_name(self) -> Optional[str]: ...

    async def set_name(self, name: str) -> str: ...

    async def clear(self) -> None: ...


class RedisNameStore:
    """Display name persisted in Redis under a fixed key."""

    def __init__(self, r: Redis, *, namespace: str = "partyclient", key: str = "rs_name"):
        self.r = r
        self.key = NK(namespace).display_name(key)

    def _dec(self, x):
        """Decode redis bytes -> str; pass through str/None."""
        if x is None:
            return None
        if isinstance(x, bytes):
            return x.decode("utf-8")
        return x

    async def get_name(self) -> Optional[str]:
        raw = await self.r.get(self.key)
        return clean_display_name(self._dec(raw))

    async def set_name(self, name: str) -> str:
        cleaned = clean_display_name(name)
        if cleaned is None:
            raise ValueError("Please enter a name")
        await self.r.set(self.key, cleaned)
        logger.info("Display name saved", key=self.key)
        return cleaned

    async def clear(self) -> None:
        await self.r.delete(self.key)


class MemoryNameStore:
    """Process-local store; used offline and in tests."""

    def __init__(self, name: Optional[str] = None):
        self._name = clean_display_name(name)

    async def get_name(self) -> Optional[str]:
        return self._name

    async def set_name(self, name: str) -> str:
        cleaned = clean_display_name(name)
        if cleaned is None:
            raise ValueError("Please enter a name")
        self._name = cleaned
        return cleaned

    async def clear(self) -> None:
        self._name = None
