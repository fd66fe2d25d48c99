from .config import AnalyticsConfig
from .metrics import accuracy_breakdown, frame_from_decisions, skill_ratings, summarize_test
from .insights import derive_insights
from .summary import BADGES, analyze_performance, determine_badge, session_payload

__all__ = [
    "AnalyticsConfig",
    "accuracy_breakdown",
    "frame_from_decisions",
    "skill_ratings",
    "summarize_test",
    "derive_insights",
    "BADGES",
    "analyze_performance",
    "determine_badge",
    "session_payload",
]
