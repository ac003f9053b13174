from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from PIL import Image

from artshop import economy
from artshop.api.models import AIReview, CatalogEntry, DrawingTool, GameState, Painting, ShopItem
from artshop.canvas.imaging import (
    IMAGE_QUALITY,
    THUMBNAIL_QUALITY,
    encode_jpeg,
    from_data_url,
    is_blank,
    load_image,
    make_thumbnail,
    to_data_url,
)
from artshop.canvas.surface import DrawingSurface
from artshop.catalog import SHOP_CATALOG, find_entry, initial_game_state
from artshop.errors import (
    AlreadySoldError,
    EmptyCanvasError,
    EvaluationInProgressError,
    NoOfferError,
    NotFoundError,
    PersistenceError,
)
from artshop.fsm import SaleFSM, SalePhase
from artshop.settings import GameSettings
from artshop.store import Store
from artshop.valuation import ValuationContext, ValuationService


logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(tz=UTC)


class PaintingFilter(StrEnum):
    all = "all"
    sold = "sold"
    unsold = "unsold"


@dataclass(slots=True)
class PendingSale:
    painting_id: str
    generation: int
    review: AIReview | None = None


class GameSession:
    """The one game in progress: state, drawing surface, shop and sale flow.

    Every state transition is computed by `artshop.economy`, written to the store,
    and only then adopted in memory. A failed write therefore leaves the session
    exactly as it was before the attempt.
    """

    def __init__(
        self,
        *,
        store: Store,
        valuation: ValuationService,
        state: GameState,
        catalog: list[CatalogEntry],
        settings: GameSettings | None = None,
    ) -> None:
        self.store = store
        self.valuation = valuation
        self.settings = settings or GameSettings()
        self._state = state
        self._catalog = catalog
        self.surface = self._new_surface()

        self._sale = SaleFSM()
        self._sale_generation = 0
        self._pending: PendingSale | None = None

    @classmethod
    def open(cls, *, store: Store, valuation: ValuationService, settings: GameSettings | None = None) -> "GameSession":
        """Load the saved game, seeding state and catalog on first run."""

        state = store.load_state()
        if state is None:
            state = initial_game_state()
            store.save_state(state)
            logger.info("started a new game")

        catalog = store.load_catalog()
        if not catalog:
            catalog = list(SHOP_CATALOG)
            store.save_catalog(catalog)

        return cls(store=store, valuation=valuation, state=state, catalog=catalog, settings=settings)

    def _new_surface(self) -> DrawingSurface:
        size = self._state.current_canvas_size
        return DrawingSurface(width=size.width, height=size.height, history_capacity=self.settings.history_capacity)

    @property
    def state(self) -> GameState:
        return self._state

    def _commit(self, new_state: GameState) -> bool:
        if new_state is self._state:
            return False
        self.store.save_state(new_state)
        self._state = new_state
        return True

    # Shop

    def shop_items(self) -> list[ShopItem]:
        return economy.shop_items_for(self._state, self._catalog)

    def next_unlock(self) -> ShopItem | None:
        return economy.next_unlock(self._state, self.shop_items())

    def purchase_item(self, item_id: str) -> bool:
        entry = find_entry(self._catalog, item_id)
        if entry is None:
            raise NotFoundError(f"Shop item not found: {item_id}")

        (item,) = economy.shop_items_for(self._state, [entry])
        purchased = self._commit(economy.purchase(item, self._state))
        if purchased:
            logger.info("purchased %s for %s coins", item.id, item.price)
        return purchased

    def select_canvas_size(self, size_id: str) -> GameState:
        if self.surface.drawing:
            raise ValueError("Cannot change canvas size while a stroke is in progress")
        if self._commit(economy.select_canvas_size(self._state, size_id)):
            size = self._state.current_canvas_size
            self.surface.resize(size.width, size.height)
        return self._state

    def select_tool(self, tool: DrawingTool) -> DrawingTool:
        if tool.color.upper() not in {c.upper() for c in self._state.unlocked_colors}:
            raise ValueError(f"Color not unlocked: {tool.color}")
        if tool.brush_size not in self._state.unlocked_brush_sizes:
            raise ValueError(f"Brush size not unlocked: {tool.brush_size}")
        self.surface.tool = tool
        return tool

    def claim_daily_bonus(self, *, now: datetime | None = None) -> bool:
        new_state, applied = economy.apply_daily_bonus(self._state, last_played_at=self._state.last_played_at, now=now or _now())
        if applied:
            self._commit(new_state)
        return applied

    def complete_tutorial(self) -> GameState:
        if not self._state.tutorial_completed:
            self._commit(self._state.model_copy(update={"tutorial_completed": True}))
        return self._state

    # Paintings

    def submit_painting(self, *, image: bytes | None = None, now: datetime | None = None) -> Painting:
        """Save the current canvas (or an uploaded image) as an unsold painting.

        Uploads must match the current canvas size. Blank submissions are
        rejected before anything is written.
        """

        if image is None:
            if self.surface.is_blank():
                raise EmptyCanvasError()
            full, thumb = self.surface.export(), self.surface.thumbnail()
        else:
            try:
                raster = load_image(image)
            except (OSError, Image.DecompressionBombError) as e:
                raise ValueError(f"Unreadable image: {e}") from e
            size = self._state.current_canvas_size
            if raster.size != (size.width, size.height):
                raise ValueError(
                    f"Image is {raster.width}x{raster.height}, expected the {size.name} canvas ({size.width}x{size.height})"
                )
            if is_blank(raster):
                raise EmptyCanvasError()
            full = encode_jpeg(raster, quality=IMAGE_QUALITY)
            thumb = encode_jpeg(make_thumbnail(raster), quality=THUMBNAIL_QUALITY)

        painting = Painting(
            id=uuid4().hex,
            image_data=to_data_url(full),
            thumbnail=to_data_url(thumb),
            created_at=now or _now(),
            canvas_size=self._state.current_canvas_size,
        )
        self.store.save_painting(painting)
        return painting

    def get_painting(self, painting_id: str) -> Painting:
        painting = self.store.get_painting(painting_id)
        if painting is None:
            raise NotFoundError(f"Painting not found: {painting_id}")
        return painting

    def paintings(self, which: PaintingFilter = PaintingFilter.all) -> list[Painting]:
        out = self.store.get_all_paintings()
        if which == PaintingFilter.sold:
            out = [p for p in out if p.is_sold]
        elif which == PaintingFilter.unsold:
            out = [p for p in out if not p.is_sold]
        out.sort(key=lambda p: p.created_at, reverse=True)
        return out

    def delete_painting(self, painting_id: str) -> None:
        self.store.delete_painting(painting_id)
        if self._pending is not None and self._pending.painting_id == painting_id:
            self.cancel_evaluation()

    # Sale flow

    @property
    def sale_phase(self) -> SalePhase:
        return self._sale.phase

    @property
    def pending_offer(self) -> AIReview | None:
        if self._sale.phase != SalePhase.offered or self._pending is None:
            return None
        return self._pending.review

    async def evaluate(self, painting_id: str) -> AIReview | None:
        """Ask for an offer on a saved painting.

        Returns None when the evaluation was cancelled while the critic was still
        working; the late review is dropped without touching any state.
        """

        if self._sale.phase == SalePhase.evaluating:
            raise EvaluationInProgressError("An evaluation is already in progress")

        painting = self.get_painting(painting_id)
        if painting.is_sold:
            raise AlreadySoldError(f"Painting already sold: {painting_id}")
        image = from_data_url(painting.image_data)

        context = ValuationContext(
            painting_count=self._state.painting_count,
            average_sale_price=economy.average_sale_price(self._state),
            canvas_size=painting.canvas_size,
        )

        self._sale.evaluation_started()
        self._sale_generation += 1
        pending = PendingSale(painting_id=painting_id, generation=self._sale_generation)
        self._pending = pending

        try:
            review = await self.valuation.evaluate(image, context)
        except BaseException:
            if self._pending is pending:
                self._sale.cancelled()
                self._pending = None
            raise

        if self._pending is not pending or self._sale.phase != SalePhase.evaluating:
            logger.info("discarding late valuation for painting %s", painting_id)
            return None

        pending.review = review
        self._sale.offer_made()
        return review

    def cancel_evaluation(self) -> None:
        if self._sale.phase == SalePhase.idle:
            return
        self._sale.cancelled()
        self._sale_generation += 1
        self._pending = None

    def reject_offer(self) -> None:
        if self._sale.phase != SalePhase.offered:
            raise NoOfferError("No offer to reject")
        self._sale.offer_rejected()
        self._pending = None

    def accept_offer(self, painting_id: str) -> Painting:
        pending = self._pending
        if self._sale.phase != SalePhase.offered or pending is None or pending.review is None:
            raise NoOfferError("No offer to accept")
        if pending.painting_id != painting_id:
            raise NoOfferError(f"The current offer is for painting {pending.painting_id}")

        painting = self.sell_painting(painting_id, price=pending.review.price, review=pending.review)
        self._sale.offer_accepted()
        self._pending = None
        return painting

    def sell_painting(self, painting_id: str, *, price: int, review: AIReview | None = None, now: datetime | None = None) -> Painting:
        painting = self.get_painting(painting_id)
        if painting.is_sold:
            raise AlreadySoldError(f"Painting already sold: {painting_id}")

        new_state = economy.record_sale(price, self._state)
        sold = self.store.update_painting(painting_id, sold_for=price, sold_at=now or _now(), ai_review=review)
        try:
            self._commit(new_state)
        except PersistenceError:
            # Keep the painting and the coin balance telling the same story.
            logger.error("state write failed after selling %s; reverting painting", painting_id)
            self.store.save_painting(painting)
            raise

        logger.info("sold painting %s for %s coins", painting_id, price)
        return sold

    def reset(self) -> None:
        """Wipe all saved data and start a fresh game."""

        self.store.clear_all()
        self.cancel_evaluation()
        state = initial_game_state()
        catalog = list(SHOP_CATALOG)
        self.store.save_state(state)
        self.store.save_catalog(catalog)
        self._state = state
        self._catalog = catalog
        self.surface = self._new_surface()
