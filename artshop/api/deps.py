from __future__ import annotations

import redis

from artshop.agents.autogen_config import critic_configured
from artshop.agents.base import CriticAgent
from artshop.agents.factory import create_default_critic
from artshop.infra.redis_client import create_redis
from artshop.session import GameSession
from artshop.settings import GameSettings, settings_from_env
from artshop.store import RedisStore
from artshop.valuation import ValuationService


_SESSION: GameSession | None = None


def init_session(
    *,
    r: redis.Redis | None = None,
    agent: CriticAgent | None = None,
    settings: GameSettings | None = None,
) -> GameSession:
    """Open the single game session once and cache it.

    Without an explicit agent the LLM critic is used when OPENAI_* env is set;
    otherwise every painting is priced by the fallback heuristic.
    """

    global _SESSION
    if _SESSION is None:
        settings = settings or settings_from_env()
        if agent is None and critic_configured():
            agent = create_default_critic()
        _SESSION = GameSession.open(
            store=RedisStore(r if r is not None else create_redis()),
            valuation=ValuationService(agent=agent, timeout_s=settings.valuation_timeout_s),
            settings=settings,
        )
    return _SESSION


def reset_session_for_tests() -> None:
    global _SESSION
    _SESSION = None


def get_session() -> GameSession:
    return init_session()
