from __future__ import annotations

from artshop.api.models import CanvasSize, CatalogEntry, GameState, ItemType


INITIAL_CANVAS_SIZE = CanvasSize(id="small", width=400, height=300, name="Small", price=0)

STARTING_COINS = 50
STARTING_COLORS = ("#000000", "#FFFFFF", "#FF0000", "#00FF00", "#0000FF")
STARTING_BRUSH_SIZES = (2, 5, 10)


def initial_game_state() -> GameState:
    return GameState(
        coins=STARTING_COINS,
        unlocked_colors=list(STARTING_COLORS),
        unlocked_brush_sizes=list(STARTING_BRUSH_SIZES),
        unlocked_canvas_sizes=[INITIAL_CANVAS_SIZE],
        current_canvas_size=INITIAL_CANVAS_SIZE,
        painting_count=0,
        total_earnings=0,
        tutorial_completed=False,
    )


def _color(item_id: str, name: str, description: str, price: int, hex_value: str) -> CatalogEntry:
    return CatalogEntry(id=item_id, type=ItemType.color, name=name, description=description, price=price, value=hex_value)


def _brush(item_id: str, name: str, description: str, price: int, size: float) -> CatalogEntry:
    return CatalogEntry(id=item_id, type=ItemType.brush, name=name, description=description, price=price, value=size)


def _canvas(item_id: str, name: str, description: str, size: CanvasSize) -> CatalogEntry:
    return CatalogEntry(id=item_id, type=ItemType.canvas, name=name, description=description, price=size.price, value=size)


SHOP_CATALOG: tuple[CatalogEntry, ...] = (
    # Basic colors.
    _color("color-yellow", "Yellow", "Bright and cheerful", 10, "#FFFF00"),
    _color("color-orange", "Orange", "Warm and vibrant", 10, "#FFA500"),
    _color("color-purple", "Purple", "Royal and mysterious", 10, "#800080"),
    _color("color-pink", "Pink", "Soft and sweet", 10, "#FFC0CB"),
    # Advanced colors.
    _color("color-cyan", "Cyan", "Cool aqua tone", 25, "#00FFFF"),
    _color("color-magenta", "Magenta", "Bold pink-purple", 25, "#FF00FF"),
    _color("color-lime", "Lime", "Electric green", 25, "#00FF00"),
    _color("color-navy", "Navy", "Deep ocean blue", 25, "#000080"),
    _color("color-maroon", "Maroon", "Rich deep red", 25, "#800000"),
    # Special colors.
    _color("color-gold", "Gold", "Luxurious metallic", 50, "#FFD700"),
    _color("color-silver", "Silver", "Sleek and modern", 50, "#C0C0C0"),
    _color("color-bronze", "Bronze", "Warm metallic", 50, "#CD7F32"),
    # Brushes.
    _brush("brush-1", "Fine Brush", "Perfect for details", 40, 1),
    _brush("brush-15", "Medium Brush", "Versatile size", 30, 15),
    _brush("brush-20", "Large Brush", "Cover more area", 50, 20),
    _brush("brush-30", "Huge Brush", "Bold strokes", 100, 30),
    # Canvases.
    _canvas("canvas-medium", "Medium Canvas", "More space to create", CanvasSize(id="medium", width=600, height=450, name="Medium", price=100)),
    _canvas("canvas-large", "Large Canvas", "Expansive workspace", CanvasSize(id="large", width=800, height=600, name="Large", price=250)),
    _canvas("canvas-xl", "XL Canvas", "Maximum creative space", CanvasSize(id="xl", width=1000, height=750, name="XL", price=500)),
)


def find_entry(entries: list[CatalogEntry] | tuple[CatalogEntry, ...], item_id: str) -> CatalogEntry | None:
    return next((e for e in entries if e.id == item_id), None)
