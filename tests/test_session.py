from __future__ import annotations

import asyncio
import io
from datetime import UTC, datetime, timedelta

import fakeredis
import pytest
from PIL import Image

from artshop.api.models import DrawingTool, GameState, Painting, ReviewSource
from artshop.catalog import SHOP_CATALOG, STARTING_COINS
from artshop.errors import (
    AlreadySoldError,
    EmptyCanvasError,
    EvaluationInProgressError,
    NoOfferError,
    NotFoundError,
    PersistenceError,
)
from artshop.fsm import SalePhase
from artshop.session import GameSession, PaintingFilter
from artshop.store import RedisStore
from artshop.valuation import ValuationService
from conftest import FailingCritic, FakeCritic, GatedCritic, paint_stroke

T0 = datetime(2026, 3, 1, 9, 30, tzinfo=UTC)


class FlakyStateStore(RedisStore):
    """RedisStore whose state writes can be switched off."""

    fail_state_writes = False

    def save_state(self, state: GameState) -> None:
        if self.fail_state_writes:
            raise PersistenceError("state write refused")
        super().save_state(state)


def _submit(session: GameSession, *, now: datetime | None = None) -> Painting:
    paint_stroke(session.surface, [(20, 20), (120, 80), (200, 150)])
    return session.submit_painting(now=now)


def _png(color: tuple[int, int, int], size: tuple[int, int] = (400, 300)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, "PNG")
    return buf.getvalue()


def test_open_seeds_state_and_catalog(session: GameSession, store: RedisStore) -> None:
    assert session.state.coins == STARTING_COINS
    assert store.load_state() == session.state
    assert store.load_catalog() == list(SHOP_CATALOG)

    # Reopening picks up the saved game rather than starting over.
    session.purchase_item("color-yellow")
    reopened = GameSession.open(store=store, valuation=ValuationService(agent=None))
    assert reopened.state == session.state


def test_purchase_with_too_few_coins_changes_nothing(session: GameSession, store: RedisStore) -> None:
    store.save_state(session.state.model_copy(update={"coins": 5}))
    poor = GameSession.open(store=store, valuation=ValuationService(agent=None))
    before = poor.state

    assert poor.purchase_item("color-yellow") is False
    assert poor.state is before
    assert store.load_state() == before


def test_purchase_persists_and_unknown_item_is_not_found(session: GameSession, store: RedisStore) -> None:
    assert session.purchase_item("brush-15") is True
    assert session.state.coins == STARTING_COINS - 30
    assert session.state.unlocked_brush_sizes == [2, 5, 10, 15]
    assert store.load_state() == session.state

    # Buying it again is a no-op.
    assert session.purchase_item("brush-15") is False

    with pytest.raises(NotFoundError):
        session.purchase_item("brush-999")


def test_purchase_during_outage_keeps_memory_state(session: GameSession, server: fakeredis.FakeServer) -> None:
    before = session.state
    server.connected = False

    with pytest.raises(PersistenceError):
        session.purchase_item("color-yellow")

    assert session.state is before
    assert session.state.coins == STARTING_COINS
    assert "#FFFF00" not in session.state.unlocked_colors


def test_submit_blank_canvas_is_rejected(session: GameSession, store: RedisStore) -> None:
    with pytest.raises(EmptyCanvasError):
        session.submit_painting()
    assert store.get_all_paintings() == []

    # Drawing then erasing everything counts as blank again.
    paint_stroke(session.surface, [(10, 10), (50, 50)])
    session.surface.clear()
    with pytest.raises(EmptyCanvasError):
        session.submit_painting()


def test_submit_painting_saves_image_and_thumbnail(session: GameSession, store: RedisStore) -> None:
    painting = _submit(session, now=T0)

    assert painting.image_data.startswith("data:image/jpeg;base64,")
    assert painting.thumbnail.startswith("data:image/jpeg;base64,")
    assert painting.created_at == T0
    assert painting.canvas_size == session.state.current_canvas_size
    assert not painting.is_sold
    assert store.get_painting(painting.id) == painting


def test_submit_uploaded_image(session: GameSession) -> None:
    painting = session.submit_painting(image=_png((200, 30, 30)))
    assert painting.image_data.startswith("data:image/jpeg;base64,")

    with pytest.raises(EmptyCanvasError):
        session.submit_painting(image=_png((255, 255, 255)))
    with pytest.raises(ValueError):
        session.submit_painting(image=b"definitely not an image")


def test_uploaded_image_must_match_canvas_size(session: GameSession, store: RedisStore) -> None:
    with pytest.raises(ValueError, match="37x5"):
        session.submit_painting(image=_png((200, 30, 30), size=(37, 5)))
    with pytest.raises(ValueError):
        session.submit_painting(image=_png((200, 30, 30), size=(600, 450)))
    assert store.get_all_paintings() == []


def test_oversized_upload_is_a_value_error(session: GameSession, store: RedisStore, monkeypatch: pytest.MonkeyPatch) -> None:
    # Anything past twice this many pixels trips Pillow's decompression bomb check.
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1_000)

    with pytest.raises(ValueError, match="Unreadable image"):
        session.submit_painting(image=_png((200, 30, 30)))
    assert store.get_all_paintings() == []


async def test_evaluate_then_accept_sells_once(session: GameSession, critic: FakeCritic, store: RedisStore) -> None:
    painting = _submit(session)

    review = await session.evaluate(painting.id)
    assert review is not None
    assert review.price == 120
    assert review.source == ReviewSource.oracle
    assert session.sale_phase == SalePhase.offered
    assert session.pending_offer == review
    assert critic.calls == 1

    sold = session.accept_offer(painting.id)
    assert sold.sold_for == 120
    assert sold.sold_at is not None
    assert sold.ai_review == review
    assert session.sale_phase == SalePhase.idle
    assert session.state.coins == STARTING_COINS + 120
    assert session.state.painting_count == 1
    assert session.state.total_earnings == 120
    assert store.load_state() == session.state

    with pytest.raises(AlreadySoldError):
        await session.evaluate(painting.id)
    with pytest.raises(NoOfferError):
        session.accept_offer(painting.id)


def test_sell_for_45_updates_counters_consistently(session: GameSession) -> None:
    painting = _submit(session)
    before = session.state

    sold = session.sell_painting(painting.id, price=45, now=T0)

    assert sold.sold_for == 45
    assert sold.sold_at == T0
    assert session.state.coins == before.coins + 45
    assert session.state.painting_count == before.painting_count + 1
    assert session.state.total_earnings == before.total_earnings + 45

    with pytest.raises(AlreadySoldError):
        session.sell_painting(painting.id, price=45)
    assert session.get_painting(painting.id).sold_at == T0


def test_sale_state_write_failure_restores_painting(r: fakeredis.FakeRedis) -> None:
    store = FlakyStateStore(r)
    session = GameSession.open(store=store, valuation=ValuationService(agent=None))
    painting = _submit(session)
    before = session.state

    store.fail_state_writes = True
    with pytest.raises(PersistenceError):
        session.sell_painting(painting.id, price=45)

    assert session.state is before
    assert not session.get_painting(painting.id).is_sold


async def test_evaluation_falls_back_when_critic_is_down(store: RedisStore) -> None:
    session = GameSession.open(store=store, valuation=ValuationService(agent=FailingCritic()))
    painting = _submit(session)

    review = await session.evaluate(painting.id)
    assert review is not None
    assert review.source == ReviewSource.fallback
    assert review.price == 45


async def test_cancelled_evaluation_discards_late_offer(store: RedisStore) -> None:
    critic = GatedCritic()
    session = GameSession.open(store=store, valuation=ValuationService(agent=critic, timeout_s=5))
    painting = _submit(session)
    before = session.state

    task = asyncio.create_task(session.evaluate(painting.id))
    await critic.started.wait()
    assert session.sale_phase == SalePhase.evaluating

    with pytest.raises(EvaluationInProgressError):
        await session.evaluate(painting.id)

    session.cancel_evaluation()
    critic.release.set()

    assert await task is None
    assert session.sale_phase == SalePhase.idle
    assert session.pending_offer is None
    assert session.state is before
    assert not session.get_painting(painting.id).is_sold


async def test_reject_offer_returns_to_idle(session: GameSession) -> None:
    painting = _submit(session)
    with pytest.raises(NoOfferError):
        session.reject_offer()

    await session.evaluate(painting.id)
    session.reject_offer()

    assert session.sale_phase == SalePhase.idle
    assert session.state.coins == STARTING_COINS
    assert not session.get_painting(painting.id).is_sold


async def test_accept_refuses_offer_for_other_painting(session: GameSession) -> None:
    first = _submit(session)
    second = _submit(session)

    await session.evaluate(first.id)
    with pytest.raises(NoOfferError):
        session.accept_offer(second.id)
    assert session.sale_phase == SalePhase.offered


async def test_delete_painting_cancels_its_offer(session: GameSession) -> None:
    painting = _submit(session)
    await session.evaluate(painting.id)

    session.delete_painting(painting.id)

    assert session.sale_phase == SalePhase.idle
    with pytest.raises(NotFoundError):
        session.get_painting(painting.id)
    with pytest.raises(NotFoundError):
        session.delete_painting(painting.id)


def test_painting_filters_newest_first(session: GameSession) -> None:
    old = _submit(session, now=T0)
    mid = _submit(session, now=T0 + timedelta(hours=1))
    new = _submit(session, now=T0 + timedelta(hours=2))
    session.sell_painting(mid.id, price=30)

    assert [p.id for p in session.paintings()] == [new.id, mid.id, old.id]
    assert [p.id for p in session.paintings(PaintingFilter.sold)] == [mid.id]
    assert [p.id for p in session.paintings(PaintingFilter.unsold)] == [new.id, old.id]


def test_daily_bonus_once_per_day(session: GameSession, store: RedisStore) -> None:
    assert session.claim_daily_bonus(now=T0) is True
    assert session.state.coins == STARTING_COINS + 10
    assert session.state.last_played_at == T0

    assert session.claim_daily_bonus(now=T0 + timedelta(hours=3)) is False
    assert session.claim_daily_bonus(now=T0 + timedelta(days=1)) is True
    assert session.state.coins == STARTING_COINS + 20
    assert store.load_state() == session.state


def test_select_canvas_size_resizes_surface(session: GameSession, store: RedisStore) -> None:
    with pytest.raises(NotFoundError):
        session.select_canvas_size("medium")

    store.save_state(session.state.model_copy(update={"coins": 200}))
    rich = GameSession.open(store=store, valuation=ValuationService(agent=None))
    assert rich.purchase_item("canvas-medium") is True

    paint_stroke(rich.surface, [(5, 5), (60, 60)])
    state = rich.select_canvas_size("medium")

    assert state.current_canvas_size.id == "medium"
    assert (rich.surface.width, rich.surface.height) == (600, 450)
    assert rich.surface.is_blank()
    assert not rich.surface.history.can_undo()

    rich.surface.pointer_down(10, 10)
    with pytest.raises(ValueError):
        rich.select_canvas_size("small")


def test_select_tool_requires_unlocked_values(session: GameSession) -> None:
    tool = session.select_tool(DrawingTool(color="#ff0000", brush_size=10))
    assert session.surface.tool == tool

    with pytest.raises(ValueError):
        session.select_tool(DrawingTool(color="#FFFF00", brush_size=10))
    with pytest.raises(ValueError):
        session.select_tool(DrawingTool(color="#000000", brush_size=15))


def test_complete_tutorial_persists(session: GameSession, store: RedisStore) -> None:
    assert session.complete_tutorial().tutorial_completed is True
    assert store.load_state().tutorial_completed is True  # type: ignore[union-attr]


async def test_reset_wipes_everything(session: GameSession, store: RedisStore) -> None:
    painting = _submit(session)
    await session.evaluate(painting.id)
    session.purchase_item("color-yellow")

    session.reset()

    assert session.state.coins == STARTING_COINS
    assert session.sale_phase == SalePhase.idle
    assert session.paintings() == []
    assert session.surface.is_blank()
    assert store.load_state() == session.state
    assert store.load_catalog() == list(SHOP_CATALOG)


async def test_reset_during_outage_keeps_sale_flow(session: GameSession, server: fakeredis.FakeServer) -> None:
    painting = _submit(session)
    await session.evaluate(painting.id)
    before = session.state

    server.connected = False
    with pytest.raises(PersistenceError):
        session.reset()

    assert session.sale_phase == SalePhase.offered
    assert session.pending_offer is not None
    assert session.state is before
