from __future__ import annotations

"""Session Manager: one test run from scenario bank to saved results.

Assembles a randomized test, builds the mode's state machine with an
assist controller beside it, and on `finish` aggregates the decision
records and persists them best-effort (remote POST, local JSON log,
Parquet store).
"""

import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from analytics.config import AnalyticsConfig
from analytics.summary import session_payload
from storage.schema import SessionMeta
from storage.store import (
    append_decisions as storage_append,
    init_store as storage_init_store,
    rows_from_decisions as storage_rows,
    upsert_session_meta as storage_upsert_meta,
    validate_records as storage_validate_records,
)

from ..engine.assist import AdaptiveAssistController
from ..engine.circuit_machine import CircuitStateMachine
from ..engine.crisis_machine import CrisisStateMachine
from ..engine.machine import ProgressionStateMachine
from ..engine.state import MODE_CIRCUIT, MODE_CRISIS
from ..results.persist import append_local_session, new_session_id, post_session
from ..scenarios.bank import assemble_test, load_circuit_templates, load_crisis_scenarios
from ..scenarios.templates import CrisisScenario, ScenarioTemplate
from ..util.randomness import make_rng
from .explain import trace as xtrace, warn

MODES = (MODE_CIRCUIT, MODE_CRISIS)

Pool = Union[Sequence[ScenarioTemplate], Sequence[CrisisScenario]]


@dataclass(frozen=True)
class SessionContext:
    session_id: str
    mode: str
    started_at: datetime
    scenario_ids: tuple


class SessionManager:
    def __init__(
        self,
        cfg: Dict[str, Any],
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        analytics_cfg: Optional[AnalyticsConfig] = None,
    ) -> None:
        self.cfg = cfg
        self.rng = rng if rng is not None else make_rng()
        self.clock = clock
        self.analytics_cfg = analytics_cfg or AnalyticsConfig()
        self.ctx: Optional[SessionContext] = None
        self.machine: Optional[ProgressionStateMachine] = None
        self.assist: Optional[AdaptiveAssistController] = None

    def load_pool(self, mode: str) -> List[Any]:
        banks = self.cfg.get("scenarios", {})
        if mode == MODE_CIRCUIT:
            return list(load_circuit_templates(Path(banks["circuit_bank"])))
        if mode == MODE_CRISIS:
            return list(load_crisis_scenarios(Path(banks["crisis_bank"])))
        raise KeyError(f"Unknown mode: {mode}")

    def start_session(self, mode: str, pool: Optional[Pool] = None, *, shuffle: bool = True) -> ProgressionStateMachine:
        if mode not in MODES:
            raise KeyError(f"Unknown mode: {mode}")
        pool = list(pool) if pool is not None else self.load_pool(mode)
        size = int(self.cfg.get("engine", {}).get("test_size", 5))
        picked = assemble_test(pool, self.rng, size) if shuffle else list(pool)[:size]

        if mode == MODE_CIRCUIT:
            machine: ProgressionStateMachine = CircuitStateMachine(picked, self.cfg, rng=self.rng, clock=self.clock)
        else:
            machine = CrisisStateMachine(picked, self.cfg, rng=self.rng, clock=self.clock)
        self.machine = machine
        self.assist = AdaptiveAssistController(machine, self.cfg)
        self.ctx = SessionContext(
            session_id=new_session_id(int(self.clock() * 1000), self.rng),
            mode=mode,
            started_at=datetime.now(timezone.utc),
            scenario_ids=tuple(p.id for p in picked),
        )
        xtrace("session_started", {"mode": mode, "scenarios": list(self.ctx.scenario_ids)})
        return machine

    def finish(self) -> Dict[str, Any]:
        """Aggregate decisions and persist them; returns the session payload."""
        assert self.ctx is not None and self.machine is not None
        decisions = self.machine.decisions
        payload = session_payload(decisions, self.ctx.mode, self.machine.total_xp, self.analytics_cfg)
        xtrace("session_ended", {"solved": payload["solved"], "xp": payload["total_xp"], "badge": payload["badge"]})

        persist = self.cfg.get("persistence", {})
        if not persist.get("enabled", True) or not decisions:
            return payload

        endpoint = persist.get("endpoint")
        if endpoint:
            post_session(str(endpoint), payload, float(persist.get("timeout_s", 8.0)))
        try:
            entry = {**payload, "records": [d.to_json() for d in decisions]}
            append_local_session(str(persist["local_path"]), entry, self.ctx.session_id)
        except OSError as e:
            warn(f"local session log not written: {e}")
        try:
            self._store_parquet(Path(persist["parquet_dir"]), payload)
        except Exception as e:
            warn(f"parquet store not updated: {e}")
        return payload

    def _store_parquet(self, data_dir: Path, payload: Dict[str, Any]) -> None:
        assert self.ctx is not None and self.machine is not None
        storage_init_store(data_dir)
        rows = storage_rows(self.ctx.session_id, self.ctx.started_at, self.machine.decisions)
        storage_append(storage_validate_records(rows), data_dir)
        storage_upsert_meta(
            SessionMeta(
                session_id=self.ctx.session_id,
                session_start=self.ctx.started_at,
                mode=self.ctx.mode,
                total_questions=payload["total_questions"],
                solved=payload["solved"],
                total_xp=payload["total_xp"],
                badge=payload["badge"],
                passed=payload["passed"],
            ),
            data_dir,
        )
