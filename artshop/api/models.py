from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class ToolMode(StrEnum):
    draw = "draw"
    erase = "erase"


class ItemType(StrEnum):
    color = "color"
    brush = "brush"
    canvas = "canvas"


class ReviewSource(StrEnum):
    oracle = "oracle"
    fallback = "fallback"


class CanvasSize(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    name: str
    price: int = Field(0, ge=0)


class DrawingTool(BaseModel):
    color: str = Field("#000000", pattern=r"^#[0-9A-Fa-f]{6}$")
    brush_size: float = Field(5, gt=0)
    mode: ToolMode = ToolMode.draw


class GameState(BaseModel):
    coins: int = Field(..., ge=0)
    unlocked_colors: list[str]
    unlocked_brush_sizes: list[float]
    unlocked_canvas_sizes: list[CanvasSize]
    current_canvas_size: CanvasSize
    painting_count: int = Field(0, ge=0)
    total_earnings: int = Field(0, ge=0)
    tutorial_completed: bool = False

    # Only touched by an explicit daily bonus claim.
    last_played_at: datetime | None = None


class CatalogEntry(BaseModel):
    """Static shop data. Whether it is unlocked is derived from GameState."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: ItemType
    name: str
    description: str = ""
    price: int = Field(..., ge=0)
    value: str | float | CanvasSize

    @field_validator("value")
    @classmethod
    def _value_matches_type(cls, v: str | float | CanvasSize, info: ValidationInfo) -> str | float | CanvasSize:
        kind = info.data.get("type")
        if kind == ItemType.color and not isinstance(v, str):
            raise ValueError("color items carry a hex string value")
        if kind == ItemType.brush and (isinstance(v, (str, CanvasSize)) or v <= 0):
            raise ValueError("brush items carry a positive size")
        if kind == ItemType.canvas and not isinstance(v, CanvasSize):
            raise ValueError("canvas items carry a CanvasSize value")
        return v


class ShopItem(CatalogEntry):
    unlocked: bool = False


class AnalysisPoints(BaseModel):
    model_config = ConfigDict(frozen=True)

    composition: int = Field(..., ge=1, le=10)
    color_use: int = Field(..., ge=1, le=10)
    creativity: int = Field(..., ge=1, le=10)
    technical_skill: int = Field(..., ge=1, le=10)


class AIReview(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: int = Field(..., ge=10, le=500)
    feedback: str = Field(..., min_length=1)
    analysis_points: AnalysisPoints
    timestamp: datetime
    source: ReviewSource = ReviewSource.oracle


class Painting(BaseModel):
    id: str
    image_data: str
    thumbnail: str
    created_at: datetime
    canvas_size: CanvasSize

    # Set once, on sale.
    sold_for: int | None = Field(None, ge=0)
    sold_at: datetime | None = None

    ai_review: AIReview | None = None

    @property
    def is_sold(self) -> bool:
        return self.sold_for is not None


class DisplayArea(BaseModel):
    """On-screen box of the canvas in client pixels."""

    left: float = 0
    top: float = 0
    width: float = Field(..., gt=0)
    height: float = Field(..., gt=0)


class PointerRequest(BaseModel):
    type: Literal["down", "move", "up", "leave"]
    x: float = 0
    y: float = 0

    # When set, x/y are client coordinates and get scaled into canvas pixels.
    display: DisplayArea | None = None


class CanvasSizeRequest(BaseModel):
    size_id: str


class PurchaseResponse(BaseModel):
    purchased: bool
    state: GameState


class ShopResponse(BaseModel):
    items: list[ShopItem]
    next_unlock: ShopItem | None = None


class PaintingListResponse(BaseModel):
    paintings: list[Painting]


class CanvasStatus(BaseModel):
    width: int
    height: int
    drawing: bool
    can_undo: bool
    can_redo: bool
    blank: bool


class DailyBonusResponse(BaseModel):
    applied: bool
    state: GameState
