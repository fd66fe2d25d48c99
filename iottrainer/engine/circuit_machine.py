from __future__ import annotations

"""Circuit Debug state machine: owns the player's board and its grading."""

import random
import time
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from ..app.events import EventBus
from ..config.config import DEFAULT_TIMERS
from ..scenarios.components import (
    SENSOR_TYPES,
    Connection,
    PlacedComponent,
    PowerSupply,
    make_component,
)
from ..scenarios.randomizer import ScenarioRandomizer
from ..scenarios.templates import ResolvedScenario, ScenarioTemplate
from ..validators.base import ValidationResult, round_half_up
from ..validators.circuit import ConnectionGraphValidator
from . import commands as cmd
from .machine import ProgressionStateMachine
from .state import MODE_CIRCUIT

TIME_BONUS_RATE = 0.5
ATTEMPT_BONUS = 10


class CircuitStateMachine(ProgressionStateMachine):
    mode = MODE_CIRCUIT
    question_prefix = "circuit"

    def __init__(
        self,
        templates: Sequence[ScenarioTemplate],
        cfg: Optional[Dict[str, Any]] = None,
        *,
        rng: Optional[random.Random] = None,
        bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not templates:
            raise ValueError("CircuitStateMachine needs at least one template")
        super().__init__(cfg, rng=rng, bus=bus, clock=clock)
        engine = (cfg or {}).get("engine", {})
        self.timers: Dict[str, int] = dict(engine.get("timers_by_difficulty", DEFAULT_TIMERS))
        psu = engine.get("power_supply", {}) or {}
        self.default_supply = PowerSupply(
            voltage=float(psu.get("voltage", 3.3)),
            current=float(psu.get("current", 500)),
        )
        self.templates: List[ScenarioTemplate] = list(templates)
        self.randomizer = ScenarioRandomizer(self.rng)
        self.validator = ConnectionGraphValidator()
        self.scenario: Optional[ResolvedScenario] = None
        self.components: Dict[str, PlacedComponent] = {}
        self.connections: List[Connection] = []
        self.power_supply = self.default_supply
        self.stability_drop = 0
        self._seq = 0
        self.select_scenario(0)

    # ── hooks ────────────────────────────────────────────────────────────

    def scenario_count(self) -> int:
        return len(self.templates)

    def _activate(self, index: int) -> None:
        self.scenario = self.randomizer.resolve(self.templates[index])

    def _initial_timer(self) -> int:
        assert self.scenario is not None
        return int(self.timers.get(self.scenario.difficulty, DEFAULT_TIMERS["easy"]))

    def _clear_artifact(self) -> None:
        self.components = {}
        self.connections = []
        self.power_supply = self.default_supply

    def _clear_penalties(self) -> None:
        self.stability_drop = 0

    def _run_validator(self) -> Tuple[ValidationResult, bool]:
        assert self.scenario is not None
        result = self.validator.validate(
            list(self.components.values()), list(self.connections), self.power_supply, self.scenario
        )
        return result, result.success

    def _success_score(self, result: ValidationResult, attempts_before: int) -> Tuple[int, int]:
        overall = result.overall
        time_bonus = round_half_up(self.state.timer_seconds * TIME_BONUS_RATE)
        attempt_bonus = (attempts_before - 1) * ATTEMPT_BONUS
        xp = round_half_up((overall + time_bonus + attempt_bonus) * self.multiplier)
        return overall, xp

    def _apply_failure(self, result: ValidationResult) -> None:
        self.stability_drop += round_half_up(15 + self.rng.random() * 10)

    def _timeout_result(self) -> ValidationResult:
        return ValidationResult(
            success=False,
            structural=0,
            calibration=0,
            resource=0,
            errors=("Timer expired",),
            feedback="⏰ Time's up! The scenario has failed.",
        )

    def _record_scores(self, result: ValidationResult) -> Tuple[int, int, int, bool]:
        if result.success:
            partial = 50 <= result.overall < 80
        else:
            partial = result.structural >= 40
        return result.structural, result.calibration, result.resource, partial

    @property
    def difficulty(self) -> str:
        return self.scenario.difficulty if self.scenario else "easy"

    @property
    def scenario_id(self) -> str:
        return self.scenario.id if self.scenario else ""

    # ── board mutations ──────────────────────────────────────────────────

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def place(self, ctype: str, x: int = 0, y: int = 0, component_id: Optional[str] = None) -> Optional[str]:
        """Place a component with type defaults; returns its id."""
        if self.state.terminal:
            return None
        cid = component_id or self._next_id("comp")
        if cid in self.components:
            raise KeyError(f"Duplicate component id: {cid}")
        comp = make_component(cid, ctype, x, y)
        self._touch()
        self.components[cid] = comp
        return cid

    def move(self, component_id: str, x: int, y: int) -> bool:
        if component_id not in self.components or not self._touch():
            return False
        self.components[component_id] = replace(self.components[component_id], x=x, y=y)
        return True

    def remove(self, component_id: str) -> bool:
        """Remove a component and every wire touching it."""
        if component_id not in self.components or not self._touch():
            return False
        del self.components[component_id]
        self.connections = [c for c in self.connections if not c.touches(component_id)]
        return True

    def update(
        self,
        component_id: str,
        *,
        resistor_value: Optional[float] = None,
        sensor_type: Optional[str] = None,
        gpio_pin: Optional[str] = None,
    ) -> bool:
        if self.state.terminal:
            return False
        if sensor_type is not None and sensor_type not in SENSOR_TYPES:
            raise ValueError(f"Unknown sensor type: {sensor_type}")
        if component_id not in self.components or not self._touch():
            return False
        comp = self.components[component_id]
        changes: Dict[str, Any] = {}
        if resistor_value is not None:
            changes["resistor_value"] = float(resistor_value)
        if sensor_type is not None:
            changes["sensor_type"] = sensor_type
        if gpio_pin is not None:
            changes["gpio_pin"] = gpio_pin
        self.components[component_id] = replace(comp, **changes)
        return True

    def connect(self, a: str, b: str) -> Optional[str]:
        """Wire two components. Self-loops, unknown ids and duplicates are ignored."""
        if a == b or a not in self.components or b not in self.components:
            return None
        if any(c.links(a, b) for c in self.connections):
            return None
        if not self._touch():
            return None
        conn = Connection(id=self._next_id("conn"), a=a, b=b)
        self.connections.append(conn)
        return conn.id

    def disconnect(self, connection_id: str) -> bool:
        if not any(c.id == connection_id for c in self.connections) or not self._touch():
            return False
        self.connections = [c for c in self.connections if c.id != connection_id]
        return True

    def set_power_supply(self, voltage: Optional[float] = None, current: Optional[float] = None) -> bool:
        if not self._touch():
            return False
        self.power_supply = PowerSupply(
            voltage=self.power_supply.voltage if voltage is None else float(voltage),
            current=self.power_supply.current if current is None else float(current),
        )
        return True

    def reroll(self) -> None:
        """Re-randomize the current template and start over."""
        self._activate(self.index)
        self.reset()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.to_json() if self.scenario else None,
            "components": [c.to_json() for c in self.components.values()],
            "connections": [{"id": c.id, "a": c.a, "b": c.b} for c in self.connections],
            "power_supply": {"voltage": self.power_supply.voltage, "current": self.power_supply.current},
            "state": self.state.to_json(),
            "stability_drop": self.stability_drop,
            "total_xp": self.total_xp,
        }

    def _handlers(self) -> Dict[type, Callable[[Any], Any]]:
        handlers = super()._handlers()
        handlers.update(
            {
                cmd.PlaceComponent: lambda c: self.place(c.type, c.x, c.y, c.id),
                cmd.MoveComponent: lambda c: self.move(c.id, c.x, c.y),
                cmd.RemoveComponent: lambda c: self.remove(c.id),
                cmd.UpdateComponent: lambda c: self.update(
                    c.id, resistor_value=c.resistor_value, sensor_type=c.sensor_type, gpio_pin=c.gpio_pin
                ),
                cmd.Connect: lambda c: self.connect(c.a, c.b),
                cmd.Disconnect: lambda c: self.disconnect(c.id),
                cmd.SetPowerSupply: lambda c: self.set_power_supply(c.voltage, c.current),
                cmd.Reroll: lambda c: self.reroll(),
            }
        )
        return handlers
