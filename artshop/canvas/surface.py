from __future__ import annotations

import logging
from dataclasses import dataclass

from PIL import Image, ImageDraw

from artshop.api.models import DrawingTool, ToolMode
from artshop.canvas.history import DEFAULT_CAPACITY, Frame, StrokeHistory
from artshop.canvas.imaging import (
    BACKGROUND_RGB,
    IMAGE_QUALITY,
    THUMBNAIL_QUALITY,
    blank_canvas,
    encode_jpeg,
    is_blank,
    make_thumbnail,
)
from artshop.fsm import SurfaceFSM, SurfacePhase


logger = logging.getLogger(__name__)

Point = tuple[float, float]


@dataclass(frozen=True, slots=True)
class DisplayRect:
    """Where the canvas is shown on screen, in client (CSS) pixels."""

    left: float
    top: float
    width: float
    height: float


def to_canvas_coords(*, client_x: float, client_y: float, rect: DisplayRect, width: int, height: int) -> Point:
    """Map a pointer position from client space into canvas pixels.

    The canvas may be displayed scaled, so each axis gets its own factor.
    """

    if rect.width <= 0 or rect.height <= 0:
        raise ValueError("Display rect must have a positive size")
    return ((client_x - rect.left) * (width / rect.width), (client_y - rect.top) * (height / rect.height))


class DrawingSurface:
    """Raster canvas fed by pointer events.

    A stroke is everything between `pointer_down` and `pointer_up`/`pointer_leave`;
    each move paints one segment from the last position, and the finished stroke is
    captured into history exactly once. Undo/redo/clear are refused mid-stroke because
    history and raster mutation are not reentrant.
    """

    def __init__(
        self,
        *,
        width: int,
        height: int,
        tool: DrawingTool | None = None,
        history_capacity: int = DEFAULT_CAPACITY,
    ) -> None:
        self.tool = tool or DrawingTool()
        self.history = StrokeHistory(capacity=history_capacity)
        self._fsm = SurfaceFSM()
        self._last_pos: Point | None = None
        self._image = blank_canvas(width, height)
        self._draw = ImageDraw.Draw(self._image)

        # The blank canvas is the floor that undo always returns to.
        self.history.capture(Frame.from_image(self._image))

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def drawing(self) -> bool:
        return self._fsm.phase == SurfacePhase.drawing

    def pointer_down(self, x: float, y: float) -> None:
        if self.drawing:
            return
        self._fsm.stroke_started()
        self._last_pos = (x, y)

    def pointer_move(self, x: float, y: float) -> None:
        if not self.drawing or self._last_pos is None:
            return
        self._segment(self._last_pos, (x, y))
        self._last_pos = (x, y)

    def pointer_up(self) -> bool:
        """Finish the stroke. Returns True if a history frame was captured."""

        if not self.drawing:
            return False
        self._fsm.stroke_ended()
        self._last_pos = None
        self.history.capture(Frame.from_image(self._image))
        return True

    def pointer_leave(self) -> bool:
        return self.pointer_up()

    def _segment(self, start: Point, end: Point) -> None:
        if self.tool.mode == ToolMode.erase:
            fill: str | tuple[int, int, int] = BACKGROUND_RGB
        else:
            fill = self.tool.color

        size = self.tool.brush_size
        self._draw.line([start, end], fill=fill, width=max(1, round(size)))

        # Round caps at both ends double as round joins between consecutive segments.
        r = size / 2
        for x, y in (start, end):
            self._draw.ellipse([x - r, y - r, x + r, y + r], fill=fill)

    def _require_idle(self, action: str) -> None:
        if self.drawing:
            raise ValueError(f"Cannot {action} while a stroke is in progress")

    def _render(self, frame: Frame) -> None:
        self._image = frame.to_image()
        self._draw = ImageDraw.Draw(self._image)

    def undo(self) -> bool:
        self._require_idle("undo")
        frame = self.history.undo()
        if frame is None:
            return False
        self._render(frame)
        return True

    def redo(self) -> bool:
        self._require_idle("redo")
        frame = self.history.redo()
        if frame is None:
            return False
        self._render(frame)
        return True

    def clear(self) -> None:
        self._require_idle("clear")
        self._draw.rectangle([0, 0, self.width, self.height], fill=BACKGROUND_RGB)
        self.history.capture(Frame.from_image(self._image))

    def resize(self, width: int, height: int) -> None:
        """Start over on a blank canvas of a new size; history restarts too."""

        self._require_idle("resize")
        self._image = blank_canvas(width, height)
        self._draw = ImageDraw.Draw(self._image)
        self.history.reset()
        self.history.capture(Frame.from_image(self._image))
        logger.debug("surface resized to %sx%s", width, height)

    def snapshot(self) -> Image.Image:
        return self._image.copy()

    def is_blank(self) -> bool:
        return is_blank(self._image)

    def export(self, *, quality: float = IMAGE_QUALITY) -> bytes:
        return encode_jpeg(self._image, quality=quality)

    def thumbnail(self, *, quality: float = THUMBNAIL_QUALITY) -> bytes:
        return encode_jpeg(make_thumbnail(self._image), quality=quality)
