from __future__ import annotations

import os
from dataclasses import dataclass

from artshop.canvas.history import DEFAULT_CAPACITY


@dataclass(frozen=True, slots=True)
class GameSettings:
    history_capacity: int = DEFAULT_CAPACITY
    # Seconds to wait on the critic before falling back to the heuristic price.
    valuation_timeout_s: float = 30.0


def settings_from_env() -> GameSettings:
    return GameSettings(
        history_capacity=int(os.environ.get("ARTSHOP_HISTORY_CAPACITY", DEFAULT_CAPACITY)),
        valuation_timeout_s=float(os.environ.get("ARTSHOP_VALUATION_TIMEOUT_S", 30.0)),
    )
