from __future__ import annotations

"""Crisis Sequence state machine: fixed-length action slots and stability."""

import random
import time
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..app.events import EventBus
from ..scenarios.templates import CrisisScenario, TroubleshootAction
from ..validators.base import SequenceValidationResult
from ..validators.sequence import SequenceOrderValidator
from . import commands as cmd
from .machine import ProgressionStateMachine
from .state import MODE_CRISIS

FULL_STABILITY = 100
TIMEOUT_STABILITY_DELTA = -20


class CrisisStateMachine(ProgressionStateMachine):
    mode = MODE_CRISIS
    question_prefix = "crisis"

    def __init__(
        self,
        scenarios: Sequence[CrisisScenario],
        cfg: Optional[Dict[str, Any]] = None,
        *,
        rng: Optional[random.Random] = None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not scenarios:
            raise ValueError("CrisisStateMachine needs at least one scenario")
        super().__init__(cfg, rng=rng, bus=bus, clock=clock)
        self.scenarios: List[CrisisScenario] = list(scenarios)
        self.validator = SequenceOrderValidator(self.multipliers, self.rng)
        self.scenario: CrisisScenario = self.scenarios[0]
        self.slots: List[Optional[str]] = []
        self.stability = FULL_STABILITY
        self.select_scenario(0)

    # ── hooks ────────────────────────────────────────────────────────────

    def scenario_count(self) -> int:
        return len(self.scenarios)

    def _activate(self, index: int) -> None:
        self.scenario = self.scenarios[index]

    def _initial_timer(self) -> int:
        return int(self.scenario.timer_seconds)

    def _clear_artifact(self) -> None:
        self.slots = [None] * self.scenario.sequence_length

    def _clear_penalties(self) -> None:
        self.stability = FULL_STABILITY

    def _apply_stability(self, delta: int) -> None:
        self.stability = max(0, min(FULL_STABILITY, self.stability + delta))

    def _run_validator(self) -> Tuple[SequenceValidationResult, bool]:
        result = self.validator.validate(self.slots, self.scenario, self.state.timer_seconds)
        return result, result.success

    def _success_score(self, result: SequenceValidationResult, attempts_before: int) -> Tuple[int, int]:
        self._apply_stability(result.stability_delta)
        return result.total_score, result.xp_earned

    def _apply_failure(self, result: SequenceValidationResult) -> None:
        self._apply_stability(result.stability_delta)

    def _timeout_result(self) -> SequenceValidationResult:
        return SequenceValidationResult(
            success=False,
            order_score=0,
            reasoning_score=0,
            time_bonus=0,
            total_score=0,
            stability_delta=TIMEOUT_STABILITY_DELTA,
            xp_earned=0,
            feedback="⏰ Time's up! The crisis escalated.",
            slot_results=(),
            correct_sequence=self.scenario.optimal_sequence,
            errors=("Timer expired",),
        )

    def _record_scores(self, result: SequenceValidationResult) -> Tuple[int, int, int, bool]:
        partial = not result.success and result.order_score >= 40
        return result.reasoning_score, result.order_score, result.stability_delta, partial

    @property
    def difficulty(self) -> str:
        return self.scenario.difficulty

    @property
    def scenario_id(self) -> str:
        return self.scenario.id

    # ── slot mutations ───────────────────────────────────────────────────

    def available_pool(self) -> List[TroubleshootAction]:
        """Actions of the scenario not currently placed in a slot."""
        placed = set(s for s in self.slots if s)
        return [a for a in self.scenario.available_actions() if a.id not in placed]

    def _check_slot(self, slot: int) -> None:
        if slot < 0 or slot >= len(self.slots):
            raise IndexError(f"slot {slot} out of range 0..{len(self.slots) - 1}")

    def place_action(self, action_id: str, slot: int) -> bool:
        """Put an action in a slot; it leaves any slot it occupied before."""
        if self.state.terminal:
            return False
        self._check_slot(slot)
        if action_id not in self.scenario.available_action_ids:
            raise KeyError(f"Action '{action_id}' is not available in {self.scenario.id}")
        if not self._touch():
            return False
        self.slots = [None if s == action_id else s for s in self.slots]
        self.slots[slot] = action_id
        return True

    def clear_slot(self, slot: int) -> bool:
        if self.state.terminal:
            return False
        self._check_slot(slot)
        if not self._touch():
            return False
        self.slots[slot] = None
        return True

    def return_to_pool(self, action_id: str) -> bool:
        if action_id not in self.slots or not self._touch():
            return False
        self.slots = [None if s == action_id else s for s in self.slots]
        return True

    def snapshot(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.to_json(),
            "slots": list(self.slots),
            "pool": [a.id for a in self.available_pool()],
            "stability": self.stability,
            "state": self.state.to_json(),
            "total_xp": self.total_xp,
        }

    def _handlers(self) -> Dict[type, Callable[[Any], Any]]:
        handlers = super()._handlers()
        handlers.update(
            {
                cmd.PlaceAction: lambda c: self.place_action(c.action_id, c.slot),
                cmd.ClearSlot: lambda c: self.clear_slot(c.slot),
                cmd.ReturnToPool: lambda c: self.return_to_pool(c.action_id),
            }
        )
        return handlers
