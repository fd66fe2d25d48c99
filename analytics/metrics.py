from __future__ import annotations

"""Metric computations over decision-record frames.

Every function takes a DataFrame with one row per DecisionRecord and
returns plain Python values; the input frame is never modified.
"""

from typing import Any, Dict, Iterable, Optional

import numpy as np
import pandas as pd

from .config import AnalyticsConfig

DIFFICULTIES = ("easy", "medium", "hard")

COLUMNS = {
    "question_id": "string",
    "mode": "string",
    "correct": "bool",
    "partial_credit": "bool",
    "time_spent": "float64",
    "reasoning_delta": "float64",
    "efficiency_delta": "float64",
    "resource_delta": "float64",
    "bonus_used": "bool",
    "cursor_activity": "float64",
    "validation_attempts": "int64",
    "final_outcome": "string",
    "difficulty": "string",
}

_FILL = {"string": "", "bool": False, "float64": 0.0, "int64": 0}


def js_round(x: float) -> int:
    """Round half up, as the scoreboards display it."""
    return int(np.floor(float(x) + 0.5))


def clamp_score(x: float, lo: float = 0, hi: float = 100) -> int:
    return int(max(lo, min(hi, js_round(x))))


def frame_from_decisions(decisions: Iterable[Any]) -> pd.DataFrame:
    """Build an analysis frame from DecisionRecords, dicts, or a stored frame."""
    if isinstance(decisions, pd.DataFrame):
        df = decisions.copy()
    else:
        rows = [d.to_json() if hasattr(d, "to_json") else dict(d) for d in decisions]
        df = pd.DataFrame(rows)
    for col, dt in COLUMNS.items():
        if col not in df.columns:
            df[col] = pd.Series([_FILL[dt]] * len(df), index=df.index, dtype=dt)
        else:
            df[col] = df[col].astype(dt)
    return df.reset_index(drop=True)


def _mean(s: pd.Series) -> float:
    return float(s.mean()) if len(s) else 0.0


def summarize_test(df: pd.DataFrame, cfg: AnalyticsConfig) -> Optional[Dict[str, Any]]:
    """Test-level summary: accuracy, time per difficulty, bonus, hesitation, resilience.

    Returns None for an empty frame.
    """
    total = len(df)
    if total == 0:
        return None
    solved_mask = df["final_outcome"] == "solved"
    solved = int(solved_mask.sum())

    per_difficulty = df.groupby("difficulty", observed=True)["time_spent"].mean()
    avg_time = {d: js_round(per_difficulty.get(d, 0.0)) for d in DIFFICULTIES}

    bonus_frequency = js_round(df["bonus_used"].sum() / total * 100)

    cursor = _mean(df["cursor_activity"])
    if cursor < cfg.cursor_slow_px_s:
        cursor_penalty = cfg.cursor_slow_penalty
    elif cursor < cfg.cursor_idle_px_s:
        cursor_penalty = cfg.cursor_idle_penalty
    else:
        cursor_penalty = 0.0
    hesitation = clamp_score(
        bonus_frequency * cfg.hesitation_bonus_weight
        + cursor_penalty
        + (total - solved) * cfg.hesitation_unsolved_penalty
    )

    retried_and_solved = int(((df["validation_attempts"] > 1) & solved_mask).sum())
    partial = int(df["partial_credit"].sum())
    base = (retried_and_solved + partial * cfg.resilience_partial_weight) / total * 100
    resilience = clamp_score(base + (cfg.resilience_solved_bonus if solved > 0 else 0))

    return {
        "accuracy_rate": js_round(solved / total * 100),
        "average_time_per_difficulty": avg_time,
        "bonus_usage_frequency": bonus_frequency,
        "hesitation_score": hesitation,
        "resilience_score": resilience,
    }


def accuracy_breakdown(df: pd.DataFrame) -> Dict[str, int]:
    correct = df["correct"]
    partial = df["partial_credit"]
    return {
        "correct": int(correct.sum()),
        "partial": int((~correct & partial).sum()),
        "wrong": int((~correct & ~partial).sum()),
    }


def time_management(df: pd.DataFrame, allowed: float) -> int:
    solved = df[df["correct"]]
    if len(solved):
        return clamp_score((1 - _mean(solved["time_spent"]) / allowed) * 100)
    return clamp_score(max(0.0, 30 - _mean(df["time_spent"]) / allowed * 30))


def skill_ratings(df: pd.DataFrame, mode: str, cfg: AnalyticsConfig) -> Dict[str, int]:
    """Reasoning, efficiency, power (debug) or stability (crisis), time management."""
    if len(df) == 0:
        return {"reasoning": 0, "efficiency": 0, "power_or_stability": 0, "time_management": 0}
    resource = _mean(df["resource_delta"])
    power_or_stability = clamp_score(resource if mode == "debug" else 100 + resource)
    return {
        "reasoning": clamp_score(_mean(df["reasoning_delta"])),
        "efficiency": clamp_score(_mean(df["efficiency_delta"])),
        "power_or_stability": power_or_stability,
        "time_management": time_management(df, cfg.allowed_for(mode)),
    }
