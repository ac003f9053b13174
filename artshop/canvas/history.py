from __future__ import annotations

from dataclasses import dataclass, field

from PIL import Image


DEFAULT_CAPACITY = 20


@dataclass(frozen=True, slots=True)
class Frame:
    """Immutable raster snapshot.

    Pixels are held as bytes so nothing can paint into a captured frame; `to_image`
    always hands back a fresh Pillow image.
    """

    mode: str
    size: tuple[int, int]
    pixels: bytes

    @staticmethod
    def from_image(image: Image.Image) -> "Frame":
        return Frame(mode=image.mode, size=image.size, pixels=image.tobytes())

    def to_image(self) -> Image.Image:
        return Image.frombytes(self.mode, self.size, self.pixels)


@dataclass(slots=True)
class StrokeHistory:
    """Bounded, linear undo/redo stack of frames with an integer cursor.

    - `step` is the index of the displayed frame (-1 only while empty).
    - capturing after an undo drops the redo branch.
    - past `capacity`, the oldest frames are evicted and the cursor shifts with them.
    """

    capacity: int = DEFAULT_CAPACITY
    _frames: list[Frame] = field(default_factory=list, init=False)
    _step: int = field(default=-1, init=False)

    def __post_init__(self) -> None:
        if self.capacity < 1:
            raise ValueError("History capacity must be at least 1")

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def step(self) -> int:
        return self._step

    def capture(self, frame: Frame) -> None:
        del self._frames[self._step + 1 :]
        self._frames.append(frame)
        self._step = len(self._frames) - 1

        evicted = len(self._frames) - self.capacity
        if evicted > 0:
            del self._frames[:evicted]
            self._step = max(0, self._step - evicted)

    def current(self) -> Frame | None:
        if not self._frames:
            return None
        return self._frames[self._step]

    def can_undo(self) -> bool:
        return self._step > 0

    def can_redo(self) -> bool:
        return 0 <= self._step < len(self._frames) - 1

    def undo(self) -> Frame | None:
        if not self.can_undo():
            return None
        self._step -= 1
        return self._frames[self._step]

    def redo(self) -> Frame | None:
        if not self.can_redo():
            return None
        self._step += 1
        return self._frames[self._step]

    def reset(self) -> None:
        self._frames.clear()
        self._step = -1
