from __future__ import annotations

"""Progression State Machine: attempts, countdown timer, terminal state.

States: Active -> Succeeded | Failed. Terminal states are sticky until an
explicit reset, reroll or scenario change. Each mode subclass supplies
its scenario list, player artifact and validator; the transitions below
are shared.
"""

import random
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..app.events import EventBus, RESET, TERMINAL, TIMER_EXTENDED, VALIDATED
from ..app.explain import trace as xtrace
from ..config.config import DEFAULT_MULTIPLIERS
from ..util.randomness import make_rng
from . import commands as cmd
from .state import (
    FAILED,
    MAX_ATTEMPTS,
    SOLVED,
    TIMEOUT,
    AttemptState,
    DecisionRecord,
    grade_for,
)


class ProgressionStateMachine:
    mode: str = ""
    question_prefix: str = ""

    def __init__(
        self,
        cfg: Optional[Dict[str, Any]] = None,
        *,
        rng: Optional[random.Random] = None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        engine = (cfg or {}).get("engine", {})
        self.max_attempts = int(engine.get("max_attempts", MAX_ATTEMPTS))
        self.multipliers: Dict[str, float] = dict(engine.get("difficulty_multipliers", DEFAULT_MULTIPLIERS))
        self.rng = rng if rng is not None else make_rng()
        self.bus = bus if bus is not None else EventBus()
        self.clock = clock
        self.index = 0
        self.total_xp = 0
        self.cursor_activity = 0.0
        self.state = AttemptState.fresh(self.max_attempts, 0)
        self._decisions: List[DecisionRecord] = []
        self._timer_budget = 0

    # ── subclass hooks ───────────────────────────────────────────────────

    def scenario_count(self) -> int:
        raise NotImplementedError

    def _activate(self, index: int) -> None:
        """Make scenario `index` current (resolve it if needed)."""
        raise NotImplementedError

    def _initial_timer(self) -> int:
        raise NotImplementedError

    def _clear_artifact(self) -> None:
        raise NotImplementedError

    def _clear_penalties(self) -> None:
        pass

    def _run_validator(self) -> Tuple[Any, bool]:
        raise NotImplementedError

    def _success_score(self, result: Any, attempts_before: int) -> Tuple[int, int]:
        """Return (overall score, xp) for a successful validation."""
        raise NotImplementedError

    def _apply_failure(self, result: Any) -> None:
        raise NotImplementedError

    def _timeout_result(self) -> Any:
        raise NotImplementedError

    def _record_scores(self, result: Any) -> Tuple[int, int, int, bool]:
        """Return (reasoning, efficiency, resource, partial credit)."""
        raise NotImplementedError

    @property
    def difficulty(self) -> str:
        raise NotImplementedError

    @property
    def scenario_id(self) -> str:
        raise NotImplementedError

    # ── queries ──────────────────────────────────────────────────────────

    @property
    def decisions(self) -> Tuple[DecisionRecord, ...]:
        return tuple(self._decisions)

    @property
    def multiplier(self) -> float:
        return float(self.multipliers.get(self.difficulty, 1.0))

    @property
    def elapsed(self) -> int:
        return max(0, self._timer_budget - self.state.timer_seconds)

    def question_id(self, pending: bool = False) -> str:
        attempt = self.state.attempts_used + (1 if pending else 0)
        return f"{self.question_prefix}-{self.index}-attempt-{attempt}"

    # ── transitions ──────────────────────────────────────────────────────

    def _touch(self) -> bool:
        """Common prologue of every artifact mutation."""
        if self.state.terminal:
            return False
        self.state.last_result = None
        self.state.timer_running = True
        return True

    def validate(self) -> Any:
        st = self.state
        if st.terminal:
            return st.last_result
        if st.timer_seconds <= 0:
            self._expire()
            return st.last_result

        attempts_before = st.attempts_left
        st.attempts_left = max(0, st.attempts_left - 1)
        result, success = self._run_validator()
        st.last_result = result

        if success:
            overall, xp = self._success_score(result, attempts_before)
            st.succeeded = True
            st.timer_running = False
            st.grade = grade_for(overall)
            st.xp_earned = xp
            self.total_xp += xp
            outcome = SOLVED
        else:
            self._apply_failure(result)
            if st.attempts_left == 0:
                st.failed = True
                st.timer_running = False
                st.grade = "F"
            outcome = FAILED

        self._append_decision(result, success, outcome)
        xtrace("validated", {"q": self.question_id(), "success": success, "attempts_left": st.attempts_left})
        self.bus.emit(VALIDATED, result)
        if st.terminal:
            self._emit_terminal()
        return result

    def tick(self) -> None:
        st = self.state
        if not st.timer_running or st.terminal:
            return
        if st.timer_seconds <= 1:
            st.timer_seconds = 0
            self._expire()
        else:
            st.timer_seconds -= 1

    def _expire(self) -> None:
        st = self.state
        st.timer_seconds = 0
        st.timer_running = False
        st.failed = True
        st.timed_out = True
        st.grade = "F"
        st.last_result = self._timeout_result()
        self._apply_failure(st.last_result)
        self._append_decision(st.last_result, False, TIMEOUT)
        self._emit_terminal()

    def _emit_terminal(self) -> None:
        st = self.state
        payload = {"scenario": self.scenario_id, "grade": st.grade, "xp": st.xp_earned, "timed_out": st.timed_out}
        xtrace("terminal", payload)
        self.bus.emit(TERMINAL, payload)

    def extend_timer(self, seconds: int, cap: int) -> bool:
        """Add time (capped at `cap` seconds absolute); marks the bonus used."""
        st = self.state
        if st.terminal or not st.timer_running or st.bonus_used:
            return False
        new_value = min(cap, st.timer_seconds + seconds)
        added = new_value - st.timer_seconds
        if added <= 0:
            return False
        st.timer_seconds = new_value
        st.bonus_used = True
        self._timer_budget += added
        xtrace("timer_extended", {"scenario": self.scenario_id, "added": added, "timer": new_value})
        self.bus.emit(TIMER_EXTENDED, {"added": added, "timer": new_value})
        return True

    def reset(self) -> None:
        """Reinitialize attempts, timer, flags and artifact for the current scenario."""
        timer = self._initial_timer()
        self.state = AttemptState.fresh(self.max_attempts, timer)
        self._timer_budget = timer
        self.cursor_activity = 0.0
        self._clear_artifact()
        self._clear_penalties()
        self.bus.emit(RESET, {"scenario": self.scenario_id, "index": self.index})

    def select_scenario(self, index: int) -> None:
        if index < 0 or index >= self.scenario_count():
            raise IndexError(f"scenario index {index} out of range")
        self.index = index
        self._activate(index)
        self.reset()

    def advance(self) -> bool:
        """Move to the next scenario; False at the end of the list."""
        if self.index + 1 >= self.scenario_count():
            return False
        self.select_scenario(self.index + 1)
        return True

    def record_cursor_activity(self, average_speed: float) -> None:
        self.cursor_activity = max(0.0, float(average_speed))

    def _append_decision(self, result: Any, success: bool, outcome: str) -> None:
        reasoning, efficiency, resource, partial = self._record_scores(result)
        self._decisions.append(
            DecisionRecord(
                question_id=self.question_id(pending=outcome == TIMEOUT),
                mode=self.mode,
                correct=success,
                partial_credit=partial,
                time_spent=float(self.elapsed),
                reasoning_delta=reasoning,
                efficiency_delta=efficiency,
                resource_delta=resource,
                bonus_used=self.state.bonus_used,
                cursor_activity=round(self.cursor_activity, 2),
                validation_attempts=self.state.attempts_used,
                final_outcome=outcome,
                difficulty=self.difficulty,
                scenario_id=self.scenario_id,
                timestamp=self.clock(),
            )
        )

    # ── message passing ──────────────────────────────────────────────────

    def _handlers(self) -> Dict[type, Callable[[Any], Any]]:
        return {
            cmd.Validate: lambda c: self.validate(),
            cmd.Tick: lambda c: self.tick(),
            cmd.Reset: lambda c: self.reset(),
            cmd.SelectScenario: lambda c: self.select_scenario(c.index),
            cmd.Advance: lambda c: self.advance(),
            cmd.ExtendTimer: lambda c: self.extend_timer(c.seconds, c.cap),
        }

    def dispatch(self, command: Any) -> Any:
        handler = self._handlers().get(type(command))
        if handler is None:
            raise KeyError(f"{type(self).__name__} does not accept {type(command).__name__}")
        return handler(command)
