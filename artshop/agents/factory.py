from __future__ import annotations

from typing import cast

from artshop.agents.ag2_backend import Ag2CriticAgent
from artshop.agents.autogen_config import settings_from_env
from artshop.agents.base import CriticAgent


def create_default_critic(*, name: str = "art-critic") -> CriticAgent:
    """Create the LLM-backed critic, configured from env."""

    return cast(CriticAgent, Ag2CriticAgent(name=name, model=settings_from_env().model))
