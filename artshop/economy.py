"""Coin economy: purchase eligibility, unlock/sale transitions and derived shop views.

Every function here is pure. Transitions return a new GameState (or the very same
object when nothing changes) and never mutate their inputs, so the session can
persist the candidate state before adopting it.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime

from artshop.api.models import CanvasSize, CatalogEntry, GameState, ItemType, ShopItem
from artshop.errors import NotFoundError


DAILY_BONUS_COINS = 10


def is_unlocked(entry: CatalogEntry, state: GameState) -> bool:
    if entry.type == ItemType.color:
        return isinstance(entry.value, str) and entry.value.upper() in {c.upper() for c in state.unlocked_colors}
    if entry.type == ItemType.brush:
        return not isinstance(entry.value, (str, CanvasSize)) and entry.value in state.unlocked_brush_sizes
    if isinstance(entry.value, CanvasSize):
        return any(cs.id == entry.value.id for cs in state.unlocked_canvas_sizes)
    return False


def shop_items_for(state: GameState, entries: Iterable[CatalogEntry]) -> list[ShopItem]:
    """Project static catalog entries into shop items with `unlocked` derived from state."""

    return [ShopItem(**e.model_dump(), unlocked=is_unlocked(e, state)) for e in entries]


def can_purchase(item: ShopItem, coins: int) -> bool:
    return coins >= item.price and not item.unlocked


def purchase(item: ShopItem, state: GameState) -> GameState:
    """Buy `item`, touching exactly one unlocked-set.

    Returns `state` itself when the purchase is not allowed (not enough coins, or
    already owned) so callers can detect the no-op with `is`.
    """

    if not can_purchase(item, state.coins) or is_unlocked(item, state):
        return state

    update: dict[str, object] = {"coins": state.coins - item.price}
    value = item.value

    if item.type == ItemType.color and isinstance(value, str):
        update["unlocked_colors"] = [*state.unlocked_colors, value]
    elif item.type == ItemType.brush and not isinstance(value, (str, CanvasSize)):
        update["unlocked_brush_sizes"] = sorted([*state.unlocked_brush_sizes, value])
    elif item.type == ItemType.canvas and isinstance(value, CanvasSize):
        update["unlocked_canvas_sizes"] = [*state.unlocked_canvas_sizes, value]
    else:
        return state

    return state.model_copy(update=update)


def record_sale(price: int, state: GameState) -> GameState:
    if price < 0:
        raise ValueError("Sale price must be non-negative")
    return state.model_copy(
        update={
            "coins": state.coins + price,
            "painting_count": state.painting_count + 1,
            "total_earnings": state.total_earnings + price,
        }
    )


def average_sale_price(state: GameState) -> float:
    if state.painting_count <= 0:
        return 0
    return state.total_earnings / state.painting_count


def next_unlock(state: GameState, items: Sequence[ShopItem]) -> ShopItem | None:
    """Cheapest locked item the player can already afford."""

    affordable = sorted((i for i in items if not i.unlocked and i.price <= state.coins), key=lambda i: i.price)
    return affordable[0] if affordable else None


def apply_daily_bonus(state: GameState, *, last_played_at: datetime | None, now: datetime) -> tuple[GameState, bool]:
    if last_played_at is not None and last_played_at.date() == now.date():
        return state, False
    new_state = state.model_copy(update={"coins": state.coins + DAILY_BONUS_COINS, "last_played_at": now})
    return new_state, True


def select_canvas_size(state: GameState, size_id: str) -> GameState:
    size = next((cs for cs in state.unlocked_canvas_sizes if cs.id == size_id), None)
    if size is None:
        raise NotFoundError(f"Canvas size not unlocked: {size_id}")
    if size == state.current_canvas_size:
        return state
    return state.model_copy(update={"current_canvas_size": size})
