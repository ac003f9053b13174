from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Protocol

import redis
from pydantic import ValidationError

from artshop.api.models import CatalogEntry, GameState, Painting
from artshop.errors import NotFoundError, PersistenceError
from artshop.lock import record_lock


logger = logging.getLogger(__name__)

KEY_PREFIX = "artshop:"
STATE_KEY = "artshop:state"
CATALOG_KEY = "artshop:catalog"
PAINTINGS_SET_KEY = "artshop:paintings"
PAINTING_KEY_PREFIX = "artshop:painting:"  # + {painting id}


def _painting_key(painting_id: str) -> str:
    return f"{PAINTING_KEY_PREFIX}{painting_id}"


class Store(Protocol):
    """Persistence collaborator used by the game session."""

    def save_state(self, state: GameState) -> None: ...
    def load_state(self) -> GameState | None: ...
    def save_painting(self, painting: Painting) -> None: ...
    def get_painting(self, painting_id: str) -> Painting | None: ...
    def get_all_paintings(self) -> list[Painting]: ...
    def update_painting(self, painting_id: str, **updates: Any) -> Painting: ...
    def delete_painting(self, painting_id: str) -> None: ...
    def save_catalog(self, entries: Sequence[CatalogEntry]) -> None: ...
    def load_catalog(self) -> list[CatalogEntry]: ...
    def clear_all(self) -> None: ...


@contextmanager
def _storage_errors(op: str) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as e:
        logger.error("store %s failed: %s", op, e)
        raise PersistenceError(f"Storage unavailable during {op}: {e}") from e


class RedisStore:
    """Redis-backed store: one JSON string per record plus a set index of painting ids."""

    def __init__(self, r: redis.Redis) -> None:
        self.r = r

    def save_state(self, state: GameState) -> None:
        with _storage_errors("save_state"):
            self.r.set(STATE_KEY, state.model_dump_json())

    def load_state(self) -> GameState | None:
        with _storage_errors("load_state"):
            raw = self.r.get(STATE_KEY)
        if not raw:
            return None
        return GameState.model_validate_json(raw)

    def save_painting(self, painting: Painting) -> None:
        with _storage_errors("save_painting"):
            pipe = self.r.pipeline(transaction=True)
            pipe.set(_painting_key(painting.id), painting.model_dump_json())
            pipe.sadd(PAINTINGS_SET_KEY, painting.id)
            pipe.execute()

    def get_painting(self, painting_id: str) -> Painting | None:
        with _storage_errors("get_painting"):
            raw = self.r.get(_painting_key(painting_id))
        if not raw:
            return None
        return Painting.model_validate_json(raw)

    def require_painting(self, painting_id: str) -> Painting:
        painting = self.get_painting(painting_id)
        if painting is None:
            raise NotFoundError(f"Painting not found: {painting_id}")
        return painting

    def get_all_paintings(self) -> list[Painting]:
        with _storage_errors("get_all_paintings"):
            ids = sorted(self.r.smembers(PAINTINGS_SET_KEY))
        out: list[Painting] = []
        for pid in ids:
            painting = self.get_painting(pid)
            if painting is not None:
                out.append(painting)
        return out

    def update_painting(self, painting_id: str, **updates: Any) -> Painting:
        with record_lock(r=self.r, key=_painting_key(painting_id)):
            painting = self.require_painting(painting_id)
            try:
                updated = Painting.model_validate({**painting.model_dump(), **updates})
            except ValidationError as e:
                raise ValueError(str(e)) from e
            self.save_painting(updated)
        return updated

    def delete_painting(self, painting_id: str) -> None:
        with _storage_errors("delete_painting"):
            pipe = self.r.pipeline(transaction=True)
            pipe.delete(_painting_key(painting_id))
            pipe.srem(PAINTINGS_SET_KEY, painting_id)
            deleted, _ = pipe.execute()
        if not deleted:
            raise NotFoundError(f"Painting not found: {painting_id}")

    def save_catalog(self, entries: Sequence[CatalogEntry]) -> None:
        # `unlocked` is derived from game state, never stored.
        rows = [e.model_dump_json(exclude={"unlocked"}) for e in entries]
        with _storage_errors("save_catalog"):
            pipe = self.r.pipeline(transaction=True)
            pipe.delete(CATALOG_KEY)
            if rows:
                pipe.rpush(CATALOG_KEY, *rows)
            pipe.execute()

    def load_catalog(self) -> list[CatalogEntry]:
        with _storage_errors("load_catalog"):
            rows = self.r.lrange(CATALOG_KEY, 0, -1)
        return [CatalogEntry.model_validate_json(row) for row in rows]

    def clear_all(self) -> None:
        with _storage_errors("clear_all"):
            keys = list(self.r.scan_iter(match=f"{KEY_PREFIX}*"))
            if keys:
                self.r.delete(*keys)
