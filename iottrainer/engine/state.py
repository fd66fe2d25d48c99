from __future__ import annotations

"""Engine state records: attempt state, decision records, grade bands."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

# Outcomes recorded on DecisionRecords
SOLVED = "solved"
FAILED = "failed"
TIMEOUT = "timeout"

MODE_CIRCUIT = "debug"
MODE_CRISIS = "crisis"

MAX_ATTEMPTS = 3

# (min score, letter), checked top-down
GRADE_BANDS = ((95, "S"), (80, "A"), (65, "B"), (50, "C"), (30, "D"))


def grade_for(score: float) -> str:
    for threshold, letter in GRADE_BANDS:
        if score >= threshold:
            return letter
    return "F"


@dataclass
class AttemptState:
    """Mutable per-scenario state owned by exactly one state machine.

    `reset` replaces the whole object, so no half-cleared state exists.
    """

    max_attempts: int = MAX_ATTEMPTS
    attempts_left: int = MAX_ATTEMPTS
    timer_seconds: int = 0
    timer_running: bool = False
    succeeded: bool = False
    failed: bool = False
    timed_out: bool = False
    xp_earned: int = 0
    grade: Optional[str] = None
    bonus_used: bool = False
    last_result: Any = None

    @classmethod
    def fresh(cls, max_attempts: int, timer_seconds: int) -> "AttemptState":
        return cls(max_attempts=max_attempts, attempts_left=max_attempts, timer_seconds=timer_seconds)

    @property
    def terminal(self) -> bool:
        return self.succeeded or self.failed

    @property
    def active(self) -> bool:
        return not self.terminal

    @property
    def attempts_used(self) -> int:
        return self.max_attempts - self.attempts_left

    def to_json(self) -> Dict[str, Any]:
        return {
            "attempts_left": self.attempts_left,
            "max_attempts": self.max_attempts,
            "timer_seconds": self.timer_seconds,
            "timer_running": self.timer_running,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "xp_earned": self.xp_earned,
            "grade": self.grade,
            "bonus_used": self.bonus_used,
        }


@dataclass(frozen=True)
class DecisionRecord:
    """Immutable audit entry for one validation attempt or time-out."""

    question_id: str
    mode: str
    correct: bool
    partial_credit: bool
    time_spent: float
    reasoning_delta: int
    efficiency_delta: int
    resource_delta: int
    bonus_used: bool
    cursor_activity: float
    validation_attempts: int
    final_outcome: str
    difficulty: str
    scenario_id: str = ""
    timestamp: float = 0.0

    def to_json(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "mode": self.mode,
            "correct": self.correct,
            "partial_credit": self.partial_credit,
            "time_spent": self.time_spent,
            "reasoning_delta": self.reasoning_delta,
            "efficiency_delta": self.efficiency_delta,
            "resource_delta": self.resource_delta,
            "bonus_used": self.bonus_used,
            "cursor_activity": self.cursor_activity,
            "validation_attempts": self.validation_attempts,
            "final_outcome": self.final_outcome,
            "difficulty": self.difficulty,
            "scenario_id": self.scenario_id,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "DecisionRecord":
        return cls(
            question_id=str(data["question_id"]),
            mode=str(data.get("mode", MODE_CIRCUIT)),
            correct=bool(data.get("correct", False)),
            partial_credit=bool(data.get("partial_credit", False)),
            time_spent=float(data.get("time_spent", 0)),
            reasoning_delta=int(data.get("reasoning_delta", 0)),
            efficiency_delta=int(data.get("efficiency_delta", 0)),
            resource_delta=int(data.get("resource_delta", 0)),
            bonus_used=bool(data.get("bonus_used", False)),
            cursor_activity=float(data.get("cursor_activity", 0)),
            validation_attempts=int(data.get("validation_attempts", 1)),
            final_outcome=str(data.get("final_outcome", FAILED)),
            difficulty=str(data.get("difficulty", "easy")),
            scenario_id=str(data.get("scenario_id", "")),
            timestamp=float(data.get("timestamp", 0)),
        )

