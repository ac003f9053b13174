from __future__ import annotations

from contextlib import contextmanager
from collections.abc import Iterator

import redis

from artshop.errors import PersistenceError


@contextmanager
def record_lock(*, r: redis.Redis, key: str, ttl_ms: int = 5_000) -> Iterator[None]:
    """Hold a short per-record write lock for a read-modify-write.

    There is exactly one player, so contention means a write is still in flight
    rather than a competing writer.
    """

    lock_key = f"lock:{key}"
    try:
        acquired = r.set(lock_key, "1", nx=True, px=ttl_ms)
    except redis.RedisError as e:
        raise PersistenceError(f"Could not lock {key}: {e}") from e
    if not acquired:
        raise PersistenceError(f"Record is busy: {key}")
    try:
        yield
    finally:
        try:
            r.delete(lock_key)
        except redis.RedisError:
            # The TTL releases it.
            pass
