from __future__ import annotations

import logging
from typing import Any

import redis
from redis.exceptions import RedisError, ResponseError, WatchError

from patch_engine.errors import (
    ConcurrentModificationError,
    ProgramRegistrationError,
    TransportError,
    WrongTypeError,
)

from .interfaces import DocumentLocation, R, Transform
from .programs import ProgramHostStore

logger = logging.getLogger(__name__)


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _transport_error(location: DocumentLocation, e: RedisError) -> TransportError:
    if isinstance(e, ResponseError) and str(e).startswith("WRONGTYPE"):
        return WrongTypeError(f"{location.describe()}: {e}")
    return TransportError(f"redis call for {location.describe()} failed: {e}")


class RedisDocumentStore(ProgramHostStore):
    """
    Documents kept in Redis as plain string values (GET/SET) or hash fields
    (HGET/HSET).

    atomic_update is an optimistic check-and-set: WATCH the key, read, run the
    transform, then MULTI/EXEC the write. EXEC aborts if another client wrote
    the key in between, in which case the whole cycle is retried from a fresh
    read, up to `max_retries` times.

    A client passed in by the caller is not closed by close().
    """

    def __init__(
        self,
        url: str = "redis://127.0.0.1:6379/0",
        *,
        client: Any = None,
        max_retries: int = 16,
    ):
        super().__init__()
        self._own_client = client is None
        self._client = client if client is not None else redis.Redis.from_url(url, decode_responses=True)
        self._max_retries = max(1, int(max_retries))

    @property
    def client(self) -> Any:
        return self._client

    def close(self) -> None:
        if self._own_client:
            self._client.close()

    def _check_ready(self) -> None:
        try:
            self._client.ping()
        except RedisError as e:
            raise ProgramRegistrationError(f"redis is not reachable: {e}") from e

    def read(self, location: DocumentLocation) -> str | None:
        try:
            if location.hash_field is None:
                return _as_text(self._client.get(location.key))
            return _as_text(self._client.hget(location.key, location.hash_field))
        except RedisError as e:
            raise _transport_error(location, e) from e

    def write(self, location: DocumentLocation, text: str) -> None:
        try:
            if location.hash_field is None:
                self._client.set(location.key, text)
            else:
                self._client.hset(location.key, location.hash_field, text)
        except RedisError as e:
            raise _transport_error(location, e) from e

    def atomic_update(self, location: DocumentLocation, transform: Transform[R]) -> R:
        try:
            with self._client.pipeline() as pipe:
                for attempt in range(1, self._max_retries + 1):
                    try:
                        pipe.watch(location.key)
                        if location.hash_field is None:
                            current = _as_text(pipe.get(location.key))
                        else:
                            current = _as_text(pipe.hget(location.key, location.hash_field))

                        new_text, result = transform(current)
                        if new_text is None:
                            pipe.unwatch()
                            return result

                        pipe.multi()
                        if location.hash_field is None:
                            pipe.set(location.key, new_text)
                        else:
                            pipe.hset(location.key, location.hash_field, new_text)
                        pipe.execute()
                        return result
                    except WatchError:
                        logger.debug(
                            "STORE REDIS: %s changed during update (attempt %d)",
                            location.describe(),
                            attempt,
                        )
                        pipe.reset()
        except RedisError as e:
            raise _transport_error(location, e) from e

        logger.warning(
            "STORE REDIS: giving up on %s after %d attempts", location.describe(), self._max_retries
        )
        raise ConcurrentModificationError(
            f"{location.describe()} kept changing; gave up after {self._max_retries} attempts",
            attempts=self._max_retries,
        )
