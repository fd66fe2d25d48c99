from __future__ import annotations

"""Sequence Order Validator for Crisis Sequence.

Slots are classified against the optimal sequence:

- correct: exact id at that index
- partial: id belongs to the optimal sequence at another index
- wrong:   empty, or id not in the optimal sequence
"""

import random
from typing import Dict, List, Mapping, Optional, Sequence

from ..scenarios.templates import CrisisScenario
from .base import SequenceValidationResult, round_half_up

CORRECT = "correct"
PARTIAL = "partial"
WRONG = "wrong"

DEFAULT_MULTIPLIERS: Dict[str, float] = {"easy": 1.0, "medium": 1.5, "hard": 2.0}

TIME_BONUS_RATE = 0.5
SUCCESS_STABILITY = 10


def classify(sequence: Sequence[Optional[str]], optimal: Sequence[str]) -> List[str]:
    out: List[str] = []
    for i, target in enumerate(optimal):
        placed = sequence[i] if i < len(sequence) else None
        if not placed:
            out.append(WRONG)
        elif placed == target:
            out.append(CORRECT)
        elif placed in optimal:
            out.append(PARTIAL)
        else:
            out.append(WRONG)
    return out


def order_score(correct: int, partial: int, length: int) -> int:
    return min(100, round_half_up((correct * 25 + partial * 12) / length * 4))


def reasoning_score(correct: int, partial: int, length: int) -> int:
    return min(100, round_half_up((correct / length) * 80 + (partial / length) * 30))


def stability_delta(correct: int, length: int, rng: random.Random) -> int:
    if correct == length:
        return SUCCESS_STABILITY
    r = rng.random()
    if correct >= length / 2:
        return -round_half_up(5 + r * 5)
    return -round_half_up(15 + r * 10)


class SequenceOrderValidator:
    def __init__(self, multipliers: Optional[Mapping[str, float]] = None, rng: Optional[random.Random] = None) -> None:
        self.multipliers = dict(multipliers or DEFAULT_MULTIPLIERS)
        self.rng = rng if rng is not None else random.Random()

    def validate(
        self,
        sequence: Sequence[Optional[str]],
        scenario: CrisisScenario,
        time_remaining: float,
    ) -> SequenceValidationResult:
        optimal = scenario.optimal_sequence
        length = len(optimal)
        slots = classify(sequence, optimal)
        correct = slots.count(CORRECT)
        partial = slots.count(PARTIAL)

        order = order_score(correct, partial, length)
        reasoning = reasoning_score(correct, partial, length)
        time_bonus = round_half_up(max(0.0, time_remaining) * TIME_BONUS_RATE)
        success = correct == length
        delta = stability_delta(correct, length, self.rng)

        mult = self.multipliers.get(scenario.difficulty, 1.0)
        if success:
            xp = round_half_up((order + time_bonus + reasoning) * mult)
        else:
            xp = round_half_up(partial * 10 * mult)

        total = min(100, round_half_up(order * 0.6 + reasoning * 0.3 + min(time_bonus, 20) * 0.5))

        errors: List[str] = []
        for i, state in enumerate(slots):
            if state == CORRECT:
                continue
            placed = sequence[i] if i < len(sequence) else None
            if not placed:
                errors.append(f"Step {i + 1} is empty")
            elif state == PARTIAL:
                errors.append(f"Step {i + 1}: {placed} belongs at another position")
            else:
                errors.append(f"Step {i + 1}: {placed} is not part of the fix")

        return SequenceValidationResult(
            success=success,
            order_score=order,
            reasoning_score=reasoning,
            time_bonus=time_bonus,
            total_score=total,
            stability_delta=delta,
            xp_earned=xp,
            feedback=self._feedback(success, correct, partial, length, scenario),
            slot_results=tuple(slots),
            correct_sequence=tuple(optimal),
            errors=tuple(errors),
        )

    @staticmethod
    def _feedback(success: bool, correct: int, partial: int, length: int, scenario: CrisisScenario) -> str:
        if success:
            return f"🎉 Perfect diagnostic sequence! {scenario.explanation}".rstrip()
        if correct >= length - 1:
            return f"⚡ Almost! {correct}/{length} steps correct. {scenario.hint}".rstrip()
        if partial > 0:
            return (
                f"🔧 Right actions, wrong order. {correct} exact + {partial} misplaced. {scenario.hint}"
            ).rstrip()
        return f"💥 Incorrect sequence. {scenario.hint}".rstrip()
