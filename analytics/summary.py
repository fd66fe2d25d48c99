from __future__ import annotations

"""Session Analytics Aggregator: one call from decision records to a summary.

`analyze_performance` is pure; it builds its own frame and leaves the
caller's records untouched.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import pandas as pd

from .config import AnalyticsConfig
from .insights import derive_insights
from .metrics import accuracy_breakdown, frame_from_decisions, js_round, skill_ratings, summarize_test

BADGES = ("Fast Fixer", "Strategic Analyst", "Under Pressure Performer", "Tactical Thinker", "Rookie Engineer")


def analyze_performance(
    decisions: Iterable[Any],
    mode: str,
    cfg: Optional[AnalyticsConfig] = None,
) -> Dict[str, Any]:
    cfg = cfg or AnalyticsConfig()
    df = frame_from_decisions(decisions)
    ratings = skill_ratings(df, mode, cfg)
    summary = summarize_test(df, cfg)
    return {
        "skill_ratings": ratings,
        "accuracy": accuracy_breakdown(df),
        "insights": derive_insights(df, mode, ratings, summary, cfg),
        "test_analytics": summary,
    }


def determine_badge(df: pd.DataFrame, cfg: Optional[AnalyticsConfig] = None) -> str:
    cfg = cfg or AnalyticsConfig()
    total = len(df)
    solved = int((df["final_outcome"] == "solved").sum())
    avg_time = float(df["time_spent"].mean()) if total else 0.0
    bonus = int(df["bonus_used"].sum())
    hard_solved = int(((df["difficulty"] == "hard") & df["correct"]).sum())

    if solved >= 3 and avg_time < cfg.fast_fixer_avg_s:
        return "Fast Fixer"
    if solved >= 4 and hard_solved >= 2:
        return "Strategic Analyst"
    if solved >= 3 and bonus >= 2:
        return "Under Pressure Performer"
    if solved >= 2:
        return "Tactical Thinker"
    return "Rookie Engineer"


def session_payload(
    decisions: Iterable[Any],
    mode: str,
    total_xp: int,
    cfg: Optional[AnalyticsConfig] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Body of the end-of-test save request."""
    cfg = cfg or AnalyticsConfig()
    df = frame_from_decisions(decisions)
    total = len(df)
    solved = int((df["final_outcome"] == "solved").sum())
    analysis = analyze_performance(df, mode, cfg)
    keep = ["question_id", "correct", "time_spent", "bonus_used", "validation_attempts", "final_outcome", "difficulty"]
    rows = df[keep].astype(object).to_dict(orient="records")
    return {
        "mode": mode,
        "total_questions": total,
        "solved": solved,
        "total_xp": int(total_xp),
        "bonus_used": int(df["bonus_used"].sum()),
        "avg_time": js_round(df["time_spent"].mean()) if total else 0,
        "badge": determine_badge(df, cfg),
        "passed": solved >= cfg.pass_solved,
        "decisions": rows,
        "analytics": analysis["test_analytics"],
        "timestamp": (now or datetime.now(timezone.utc)).isoformat(),
    }
