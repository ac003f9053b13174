from __future__ import annotations

import pytest

from artshop.agents.autogen_config import critic_configured, llm_config_from_env
from artshop.settings import GameSettings, settings_from_env


def test_game_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ARTSHOP_HISTORY_CAPACITY", raising=False)
    monkeypatch.delenv("ARTSHOP_VALUATION_TIMEOUT_S", raising=False)
    assert settings_from_env() == GameSettings()


def test_game_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARTSHOP_HISTORY_CAPACITY", "5")
    monkeypatch.setenv("ARTSHOP_VALUATION_TIMEOUT_S", "2.5")
    s = settings_from_env()
    assert s.history_capacity == 5
    assert s.valuation_timeout_s == 2.5


def test_critic_needs_key_or_base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
    assert critic_configured() is False
    with pytest.raises(RuntimeError):
        llm_config_from_env()

    monkeypatch.setenv("OPENAI_BASE_URL", "http://127.0.0.1:11434/v1")
    assert critic_configured() is True
    llm_config_from_env()
