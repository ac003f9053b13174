from __future__ import annotations

import os

import httpx
import pytest

from artshop.agents.factory import create_default_critic
from artshop.api.models import ReviewSource
from artshop.canvas.surface import DrawingSurface
from artshop.catalog import INITIAL_CANVAS_SIZE
from artshop.valuation import ValuationContext, ValuationService
from conftest import paint_stroke


def _ollama_healthy(base_url: str) -> bool:
    # base_url might be http://127.0.0.1:11434/v1
    root = base_url.removesuffix("/v1")
    try:
        r = httpx.get(f"{root}/api/tags", timeout=1.0)
        return r.status_code == 200
    except Exception:
        return False


@pytest.mark.asyncio
async def test_critic_reviews_a_painting_env_gated() -> None:
    base_url = os.environ.get("OPENAI_BASE_URL")
    api_key = os.environ.get("OPENAI_API_KEY")

    if not (api_key or base_url):
        pytest.skip("Set OPENAI_API_KEY or OPENAI_BASE_URL")

    if base_url and not _ollama_healthy(base_url):
        pytest.skip("Ollama not reachable at OPENAI_BASE_URL")

    surface = DrawingSurface(width=INITIAL_CANVAS_SIZE.width, height=INITIAL_CANVAS_SIZE.height)
    paint_stroke(surface, [(50, 50), (200, 120), (350, 250)])

    service = ValuationService(agent=create_default_critic(), timeout_s=120)
    outcome = await service.ask_oracle(
        surface.export(),
        ValuationContext(painting_count=0, average_sale_price=0, canvas_size=INITIAL_CANVAS_SIZE),
    )

    assert outcome.ok, outcome.error
    assert outcome.review is not None
    assert outcome.review.source == ReviewSource.oracle
    assert 10 <= outcome.review.price <= 500
