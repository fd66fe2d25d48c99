from __future__ import annotations

"""Shared result types and scoring helpers for the validators."""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


def round_half_up(x: float) -> int:
    """Round .5 away from negative infinity (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(x + 0.5))


def clamp(x: float, lo: float = 0, hi: float = 100) -> float:
    return max(lo, min(hi, x))


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of one circuit validation. Never mutated after construction."""

    success: bool
    structural: int
    calibration: int
    resource: int
    errors: Tuple[str, ...] = ()
    feedback: str = ""

    @property
    def scores(self) -> Dict[str, int]:
        return {
            "structural": self.structural,
            "calibration": self.calibration,
            "resource": self.resource,
        }

    @property
    def overall(self) -> int:
        return round_half_up((self.structural + self.calibration + self.resource) / 3)

    def to_json(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "scores": self.scores,
            "errors": list(self.errors),
            "feedback": self.feedback,
        }


@dataclass(frozen=True)
class SequenceValidationResult:
    """Outcome of one crisis sequence validation."""

    success: bool
    order_score: int
    reasoning_score: int
    time_bonus: int
    total_score: int
    stability_delta: int
    xp_earned: int
    feedback: str
    slot_results: Tuple[str, ...]
    correct_sequence: Tuple[str, ...]
    errors: Tuple[str, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "order_score": self.order_score,
            "reasoning_score": self.reasoning_score,
            "time_bonus": self.time_bonus,
            "total_score": self.total_score,
            "stability_delta": self.stability_delta,
            "xp_earned": self.xp_earned,
            "feedback": self.feedback,
            "slot_results": list(self.slot_results),
            "correct_sequence": list(self.correct_sequence),
            "errors": list(self.errors),
        }


@dataclass
class ErrorLog:
    """Accumulates human-readable validation errors in insertion order."""

    items: List[str] = field(default_factory=list)

    def add(self, msg: str) -> None:
        self.items.append(msg)

    def __len__(self) -> int:
        return len(self.items)

    def freeze(self) -> Tuple[str, ...]:
        return tuple(self.items)


def almost_feedback(issues: int, hint: str) -> str:
    """Feedback for a near miss or a failed attempt, tiered by issue count."""
    if issues <= 2:
        noun = "issue" if issues == 1 else "issues"
        return f"⚡ Almost! {issues} {noun} remaining. {hint}".rstrip()
    return f"🔧 {issues} issues. {hint}".rstrip()
