from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path

import fakeredis
import pytest
from fastapi.testclient import TestClient

from artshop.agents.base import AgentAction, JsonSchema
from artshop.canvas.surface import DrawingSurface
from artshop.session import GameSession
from artshop.store import RedisStore
from artshop.valuation import ValuationService


@pytest.fixture(scope="session", autouse=True)
def _load_dotenv_for_tests() -> None:
    """Load repo .env for local runs so the env-gated critic test can find OPENAI_*.

    In CI, `.env` is not loaded unless explicitly opted in with ARTSHOP_LOAD_DOTENV_FOR_TESTS=1.
    """

    if os.environ.get("CI") and os.environ.get("ARTSHOP_LOAD_DOTENV_FOR_TESTS") != "1":
        return

    env_path = Path(__file__).resolve().parents[1] / ".env"
    if env_path.exists():
        from dotenv import load_dotenv

        load_dotenv(dotenv_path=env_path, override=False)


@dataclass
class FakeCritic:
    """Critic that replies with canned text and records what it was sent."""

    content: str = '{"price": 120, "feedback": "Lovely.", "composition": 7, "colorUse": 8, "creativity": 9, "technicalSkill": 6}'
    name: str = "fake-critic"
    calls: int = 0
    seen_prompt: str | None = None
    seen_image: bytes | None = None
    seen_schema: JsonSchema | None = None

    async def review(self, *, prompt: str, image: bytes, structured_output: JsonSchema | None = None) -> AgentAction:
        self.calls += 1
        self.seen_prompt = prompt
        self.seen_image = image
        self.seen_schema = structured_output
        return AgentAction(kind="review", content=self.content)


@dataclass
class FailingCritic:
    name: str = "down-critic"
    error: Exception = field(default_factory=lambda: ConnectionError("critic unreachable"))

    async def review(self, *, prompt: str, image: bytes, structured_output: JsonSchema | None = None) -> AgentAction:
        raise self.error


@dataclass
class GatedCritic:
    """Critic that blocks until `release` is set, to hold an evaluation open."""

    name: str = "gated-critic"
    release: asyncio.Event = field(default_factory=asyncio.Event)
    started: asyncio.Event = field(default_factory=asyncio.Event)
    content: str = '{"price": 80, "feedback": "Worth the wait.", "composition": 6, "colorUse": 6, "creativity": 6, "technicalSkill": 6}'

    async def review(self, *, prompt: str, image: bytes, structured_output: JsonSchema | None = None) -> AgentAction:
        self.started.set()
        await self.release.wait()
        return AgentAction(kind="review", content=self.content)


@pytest.fixture()
def server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest.fixture()
def r(server: fakeredis.FakeServer) -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(server=server, decode_responses=True)


@pytest.fixture()
def store(r: fakeredis.FakeRedis) -> RedisStore:
    return RedisStore(r)


@pytest.fixture()
def critic() -> FakeCritic:
    return FakeCritic()


@pytest.fixture()
def session(store: RedisStore, critic: FakeCritic) -> GameSession:
    return GameSession.open(store=store, valuation=ValuationService(agent=critic, timeout_s=5))


def paint_stroke(surface: DrawingSurface, points: list[tuple[float, float]]) -> None:
    (x0, y0), *rest = points
    surface.pointer_down(x0, y0)
    for x, y in rest:
        surface.pointer_move(x, y)
    surface.pointer_up()


@pytest.fixture()
def client_and_session(session: GameSession) -> Generator[tuple[TestClient, GameSession], None, None]:
    from artshop.api.deps import get_session
    from artshop.main import app

    app.dependency_overrides[get_session] = lambda: session
    with TestClient(app) as c:
        yield c, session
    app.dependency_overrides.clear()
