from __future__ import annotations

from functools import lru_cache
from pathlib import Path


CRITIC_RUBRIC = "critic_rubric.txt"


class PromptLoadError(RuntimeError):
    pass


def prompts_dir() -> Path:
    # artshop/prompts.py -> artshop/ -> project root
    return Path(__file__).resolve().parents[1] / "prompts"


@lru_cache(maxsize=8)
def load_prompt(name: str) -> str:
    """Read a prompt template from `prompts/`, cached after the first read."""

    path = prompts_dir() / name
    try:
        return path.read_text(encoding="utf-8").strip() + "\n"
    except FileNotFoundError as e:
        raise PromptLoadError(f"Missing prompt template {name!r} (looked in {path.parent})") from e


def render_critic_rubric(*, canvas_name: str, canvas_width: int, canvas_height: int, painting_count: int, average_sale_price: float) -> str:
    """Fill the critic rubric with the player's progress.

    `painting_count` is the number of paintings already sold, so the one under
    review is number `painting_count + 1`.
    """

    return load_prompt(CRITIC_RUBRIC).format(
        canvas_name=canvas_name,
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        painting_number=painting_count + 1,
        average_sale_price=f"{average_sale_price:.0f}",
    )
