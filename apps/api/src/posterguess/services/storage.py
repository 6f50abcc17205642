from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from redis import Redis
from sqlalchemy import delete

from ..core.database import get_session_factory
from ..db.models import StoredValue

KEY_NAMESPACE = "posterguess:"


class KeyValueStore(ABC):
    """Flat, synchronous string store backing every persisted ledger value.

    Each call is a single-key operation; no cross-key transactions are offered.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def remove(self, key: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError


class InMemoryStore(KeyValueStore):
    """Process-local store, used by tests and ephemeral deployments."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)

    def clear(self) -> None:
        self._values.clear()


class SqlStore(KeyValueStore):
    """Store backed by the ``stored_values`` table."""

    def __init__(self) -> None:
        self.session_factory = get_session_factory()

    def get(self, key: str) -> Optional[str]:
        with self.session_factory() as session:
            record = session.get(StoredValue, key)
            return record.value if record is not None else None

    def set(self, key: str, value: str) -> None:
        with self.session_factory() as session:
            try:
                record = session.get(StoredValue, key)
                if record is None:
                    session.add(StoredValue(key=key, value=value))
                else:
                    record.value = value
                session.commit()
            except Exception:
                session.rollback()
                raise

    def remove(self, key: str) -> None:
        with self.session_factory() as session:
            try:
                session.execute(delete(StoredValue).where(StoredValue.key == key))
                session.commit()
            except Exception:
                session.rollback()
                raise

    def clear(self) -> None:
        with self.session_factory() as session:
            try:
                session.execute(delete(StoredValue))
                session.commit()
            except Exception:
                session.rollback()
                raise


class RedisStore(KeyValueStore):
    """Redis-backed store. ``clear`` only wipes the application namespace."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    def get(self, key: str) -> Optional[str]:
        raw = self._client.get(key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    def set(self, key: str, value: str) -> None:
        self._client.set(key, value)

    def remove(self, key: str) -> None:
        self._client.delete(key)

    def clear(self) -> None:
        keys = list(self._client.scan_iter(match=f"{KEY_NAMESPACE}*"))
        if keys:
            self._client.delete(*keys)


_store: KeyValueStore | None = None


def get_store(redis_url: str | None = None) -> KeyValueStore:
    global _store
    if _store is not None:
        return _store
    if redis_url:
        _store = RedisStore(Redis.from_url(redis_url, decode_responses=True))
    else:
        _store = SqlStore()
    return _store


def reset_store() -> None:
    global _store
    _store = None
