from __future__ import annotations

"""Threshold rules that turn session metrics into player-facing insight strings."""

from typing import Any, Dict, List, Optional

import pandas as pd

from .config import AnalyticsConfig

FALLBACK = "📈 Keep practicing to build stronger diagnostic skills."


def derive_insights(
    df: pd.DataFrame,
    mode: str,
    ratings: Dict[str, int],
    summary: Optional[Dict[str, Any]],
    cfg: AnalyticsConfig,
) -> List[str]:
    total = len(df)
    if total == 0:
        return ["No decisions recorded yet."]
    allowed = cfg.allowed_for(mode)
    out: List[str] = []

    correct_pct = df["correct"].sum() / total * 100
    if correct_pct >= 80:
        out.append("🎯 Strong analytical accuracy.")
    elif correct_pct >= 50:
        out.append("📊 Moderate accuracy, with room for improvement.")
    else:
        out.append("⚠️ Accuracy needs significant improvement.")

    rushed = (df["time_spent"] < allowed * cfg.rush_fraction).sum()
    if rushed > total * 0.5:
        out.append("⏩ You tend to rush decisions. Take more time to analyze.")

    first = df[df["question_id"].str.endswith("attempt-1")]
    if len(first) and (~first["correct"]).sum() > len(first) * 0.6:
        out.append("🔍 Initial diagnosis accuracy needs improvement.")

    reasoning, efficiency = ratings["reasoning"], ratings["efficiency"]
    if efficiency >= 70 and reasoning < 50:
        out.append("⚡ Fast but inconsistent logic. Focus on reasoning quality.")
    if reasoning >= 70 and efficiency < 50:
        out.append("🧠 Good reasoning but inefficient approach. Optimize your steps.")

    tm = ratings["time_management"]
    if tm >= 75:
        out.append("⏱ Excellent time management.")
    elif tm < 30:
        out.append("⏱ Poor time management. Practice working under pressure.")

    if mode == "debug" and ratings["power_or_stability"] >= 80:
        out.append("🔋 Strong power configuration awareness.")
    if mode == "crisis" and ratings["power_or_stability"] < 40:
        out.append("🛡 System stability is suffering. Be more careful with step ordering.")

    if summary is not None:
        if summary["bonus_usage_frequency"] >= 40:
            out.append("🤔 You tend to hesitate under pressure.")

        hard = df[df["difficulty"] == "hard"]
        hard_solved = hard[hard["correct"]]
        if len(hard) and len(hard_solved) >= len(hard) * 0.6:
            if hard_solved["time_spent"].mean() < allowed * 0.6:
                out.append("🚀 Strong advanced reasoning capability.")

        if (df["validation_attempts"] > 1).sum() > total * 0.5:
            out.append("🔄 Improvement in first-attempt accuracy needed.")
        if summary["resilience_score"] >= 70:
            out.append("💪 Strong resilience. You recover well from mistakes.")
        if summary["hesitation_score"] >= 60:
            out.append("🖱 Low cursor engagement detected. Stay active while thinking.")

    if len(out) <= 1:
        out.append(FALLBACK)
    return out
