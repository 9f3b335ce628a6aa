from typing import Dict, Optional

from redis import Redis
from redis.exceptions import RedisError

from contestbot.core.state_machine import COMPLETED
from contestbot.settings import settings
from contestbot.store.models import Session
from contestbot.observability.logging import log


class SessionStoreError(Exception):
    """The session store could not complete a read or write."""


class SessionStore:
    """
    Keyed, field-mapped, expiring storage.
    get() returns {} for a missing or expired key.
    """

    def get(self, key: str) -> Dict[str, str]:
        raise NotImplementedError

    def set_fields(self, key: str, fields: Dict[str, str]) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def expire(self, key: str, seconds: int) -> None:
        raise NotImplementedError


class RedisSessionStore(SessionStore):
    def __init__(self, redis: Redis):
        self._r = redis

    def get(self, key: str) -> Dict[str, str]:
        try:
            return self._r.hgetall(key) or {}
        except RedisError as e:
            raise SessionStoreError(f"hgetall {key} failed: {e}") from e

    def set_fields(self, key: str, fields: Dict[str, str]) -> None:
        if not fields:
            return
        try:
            self._r.hset(key, mapping=fields)
        except RedisError as e:
            raise SessionStoreError(f"hset {key} failed: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._r.delete(key)
        except RedisError as e:
            raise SessionStoreError(f"delete {key} failed: {e}") from e

    def expire(self, key: str, seconds: int) -> None:
        try:
            self._r.expire(key, int(seconds))
        except RedisError as e:
            raise SessionStoreError(f"expire {key} failed: {e}") from e


class SessionRepository:
    """
    Session persistence on top of a SessionStore.

    Every write re-arms the inactivity TTL, so the window counts from the
    last accepted answer rather than from the welcome message.
    """

    def __init__(self, store: SessionStore, *, ttl_sec: int = None, prefix: str = None):
        self.store = store
        self.ttl_sec = int(ttl_sec if ttl_sec is not None else settings.SESSION_TTL_SEC)
        self.prefix = prefix if prefix is not None else settings.SESSION_KEY_PREFIX

    def key(self, address: str) -> str:
        return f"{self.prefix}{address}"

    def load(self, address: str) -> Optional[Session]:
        fields = self.store.get(self.key(address))
        session = Session.from_fields(address, fields)
        if session is None and fields:
            # Hash exists but carries no usable step; treat as a fresh start.
            log(event="session_unrecognised", address=address, step=str(fields.get("step")))
        return session

    def start(self, address: str, step: str) -> Session:
        session = Session(address=address, step=step)
        self._write(address, session.to_fields())
        return session

    def update(self, address: str, **fields: str) -> None:
        self._write(address, {k: v for k, v in fields.items() if v is not None})

    def clear(self, address: str) -> None:
        self.store.delete(self.key(address))

    def retire(self, address: str) -> None:
        """
        End a finished session whose delete failed: expire it now, or
        failing that mark it COMPLETED so the next load starts over.
        """
        key = self.key(address)
        try:
            self.store.expire(key, 0)
        except SessionStoreError:
            self.store.set_fields(key, {"step": COMPLETED})

    def _write(self, address: str, fields: Dict[str, str]) -> None:
        key = self.key(address)
        self.store.set_fields(key, fields)
        self.store.expire(key, self.ttl_sec)
