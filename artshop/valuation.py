"""Painting valuation: ask the critic oracle, fall back to the heuristic price.

The player must always get an offer, so `ValuationService.evaluate` never raises
for oracle trouble. Internally each attempt produces a `ValuationOutcome` (review
or error) and the service collapses failures into the deterministic fallback.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import random
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from artshop.agents.base import CriticAgent, JsonSchema
from artshop.api.models import AIReview, AnalysisPoints, CanvasSize, ReviewSource
from artshop.prompts import render_critic_rubric


logger = logging.getLogger(__name__)

BASE_PRICE = 20
REFERENCE_AREA = 400 * 300
EARLY_PAINTINGS = 5
EARLY_BONUS_PER_PAINTING = 5
MIN_PRICE = 10
MAX_PRICE = 500
MIN_SCORE = 1
MAX_SCORE = 10

FALLBACK_FEEDBACK: tuple[str, ...] = (
    "I appreciate your creative effort! Keep painting to improve your skills.",
    "This shows promise! I can see you're exploring different techniques.",
    "You're making progress! Your use of the canvas is developing nicely.",
    "I see potential in your work. Keep experimenting with colors and composition!",
    "Your artistic journey is underway! Each painting teaches you something new.",
)

# Inclusive jitter ranges for heuristic sub-scores.
FALLBACK_SCORE_RANGES: dict[str, tuple[int, int]] = {
    "composition": (5, 7),
    "color_use": (5, 7),
    "creativity": (6, 8),
    "technical_skill": (4, 6),
}

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

_SCORE_KEYS = {
    "composition": "composition",
    "colorUse": "color_use",
    "creativity": "creativity",
    "technicalSkill": "technical_skill",
}

REVIEW_SCHEMA = JsonSchema(
    name="painting_review",
    schema={
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "price": {"type": "number"},
            "feedback": {"type": "string"},
            "composition": {"type": "number"},
            "colorUse": {"type": "number"},
            "creativity": {"type": "number"},
            "technicalSkill": {"type": "number"},
        },
        "required": ["price", "feedback", "composition", "colorUse", "creativity", "technicalSkill"],
    },
    strict=True,
)


class ReviewParseError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class ValuationContext:
    painting_count: int
    average_sale_price: float
    canvas_size: CanvasSize


@dataclass(frozen=True, slots=True)
class ValuationOutcome:
    review: AIReview | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.review is not None


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def strip_formatting(text: str) -> str:
    """Drop markdown fences and any chatter around the JSON object."""

    cleaned = _FENCE_RE.sub("", text).strip()
    if not cleaned.startswith("{"):
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start != -1 and end > start:
            cleaned = cleaned[start : end + 1]
    return cleaned


def _number(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is an int subclass; a true/false score is still malformed.
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ReviewParseError(f"Missing/invalid '{key}' field")
    return round(value)


def parse_review(text: str, *, now: datetime | None = None) -> AIReview:
    """Parse the critic reply into an AIReview.

    Expected a JSON object (optionally fenced):
        {"price": 45, "feedback": "...", "composition": 6, "colorUse": 7,
         "creativity": 8, "technicalSkill": 5}

    Numbers are rounded and clamped into range; anything structurally off is rejected.
    """

    try:
        data = json.loads(strip_formatting(text))
    except json.JSONDecodeError as e:
        raise ReviewParseError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ReviewParseError("Expected a JSON object")

    feedback = data.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        raise ReviewParseError("Missing/invalid 'feedback' field")

    price = _clamp(_number(data, "price"), MIN_PRICE, MAX_PRICE)
    scores = {field: _clamp(_number(data, key), MIN_SCORE, MAX_SCORE) for key, field in _SCORE_KEYS.items()}

    return AIReview(
        price=price,
        feedback=feedback.strip(),
        analysis_points=AnalysisPoints(**scores),
        timestamp=now or _now(),
        source=ReviewSource.oracle,
    )


def fallback_price(*, canvas_size: CanvasSize, painting_count: int) -> int:
    size_multiplier = (canvas_size.width * canvas_size.height) / REFERENCE_AREA
    progression_bonus = max(0, EARLY_PAINTINGS - painting_count) * EARLY_BONUS_PER_PAINTING
    raw = math.floor(BASE_PRICE * size_multiplier + progression_bonus)
    return _clamp(raw, MIN_PRICE, MAX_PRICE)


def fallback_feedback(painting_count: int) -> str:
    return FALLBACK_FEEDBACK[painting_count % len(FALLBACK_FEEDBACK)]


def fallback_review(context: ValuationContext, *, rng: random.Random | None = None, now: datetime | None = None) -> AIReview:
    rng = rng or random.Random()
    scores = {field: rng.randint(lo, hi) for field, (lo, hi) in FALLBACK_SCORE_RANGES.items()}
    return AIReview(
        price=fallback_price(canvas_size=context.canvas_size, painting_count=context.painting_count),
        feedback=fallback_feedback(context.painting_count),
        analysis_points=AnalysisPoints(**scores),
        timestamp=now or _now(),
        source=ReviewSource.fallback,
    )


class ValuationService:
    """Price a painting with the critic oracle, or with the heuristic when it is unavailable."""

    def __init__(
        self,
        *,
        agent: CriticAgent | None,
        timeout_s: float = 30.0,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.agent = agent
        self.timeout_s = timeout_s
        self.rng = rng or random.Random()
        self.clock = clock

    def rubric_for(self, context: ValuationContext) -> str:
        return render_critic_rubric(
            canvas_name=context.canvas_size.name,
            canvas_width=context.canvas_size.width,
            canvas_height=context.canvas_size.height,
            painting_count=context.painting_count,
            average_sale_price=context.average_sale_price,
        )

    async def ask_oracle(self, image: bytes, context: ValuationContext) -> ValuationOutcome:
        if self.agent is None:
            return ValuationOutcome(error="critic not configured")

        try:
            action = await asyncio.wait_for(
                self.agent.review(prompt=self.rubric_for(context), image=image, structured_output=REVIEW_SCHEMA),
                timeout=self.timeout_s,
            )
            return ValuationOutcome(review=parse_review(action.content, now=self.clock()))
        except TimeoutError:
            return ValuationOutcome(error=f"critic timed out after {self.timeout_s}s")
        except Exception as e:
            return ValuationOutcome(error=f"{type(e).__name__}: {e}")

    async def evaluate(self, image: bytes, context: ValuationContext) -> AIReview:
        outcome = await self.ask_oracle(image, context)
        if outcome.review is not None:
            return outcome.review

        logger.warning("critic unavailable, using fallback price: %s", outcome.error)
        return fallback_review(context, rng=self.rng, now=self.clock())
