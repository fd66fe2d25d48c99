from __future__ import annotations

"""Analytics configuration (hyperparameters) using Pydantic."""

from typing import Dict
from pydantic import BaseModel, Field


class AnalyticsConfig(BaseModel):
    """Thresholds and weights for session analytics.

    - typical_allowed_s: reference time budget per mode, used for time
      management and rushing detection
    - hesitation_*: weights of the hesitation score
    - resilience_*: weights of the resilience score
    - pass_solved: solved questions needed to pass a test
    """

    typical_allowed_s: Dict[str, float] = Field(default_factory=lambda: {"debug": 120.0, "crisis": 90.0})
    cursor_slow_px_s: float = Field(10.0, gt=0)
    cursor_idle_px_s: float = Field(20.0, gt=0)
    cursor_slow_penalty: float = Field(30.0, ge=0)
    cursor_idle_penalty: float = Field(15.0, ge=0)
    hesitation_bonus_weight: float = Field(0.6, ge=0)
    hesitation_unsolved_penalty: float = Field(5.0, ge=0)
    resilience_partial_weight: float = Field(0.5, ge=0)
    resilience_solved_bonus: float = Field(20.0, ge=0)
    rush_fraction: float = Field(0.2, gt=0, lt=1)
    pass_solved: int = Field(3, ge=1)
    fast_fixer_avg_s: float = Field(45.0, gt=0)

    def allowed_for(self, mode: str) -> float:
        return float(self.typical_allowed_s.get(mode, 120.0))
