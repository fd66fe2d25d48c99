from __future__ import annotations

"""Connection Graph Validator for Circuit Debug.

Grades the player's board against a resolved scenario:

1. Required typed edges exist (type-level adjacency, not path reachability)
2. Resistor value inside the scenario's accepted range
3. Power and ground present, supply meets the voltage/current minimum
4. Controller configured on the required pin
5. Sensor of the required sub-type (error only, no score penalty)
6. No floating components

The check is purely logical; no voltages are simulated.
"""

from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..scenarios.components import (
    CONTROLLER,
    GROUND,
    LIMITER,
    POWER,
    SENSOR,
    Connection,
    PlacedComponent,
    PowerSupply,
    format_resistor,
)
from ..scenarios.templates import Edge, ResolvedScenario
from .base import ErrorLog, ValidationResult, almost_feedback, clamp, round_half_up


def _unique_edges(edges: Iterable[Edge]) -> List[Edge]:
    seen: Set[frozenset] = set()
    out: List[Edge] = []
    for a, b in edges:
        key = frozenset((a, b))
        if key in seen:
            continue
        seen.add(key)
        out.append((a, b))
    return out


def _adjacent_types(components: Sequence[PlacedComponent], connections: Sequence[Connection]) -> Set[Tuple[str, str]]:
    """All (type, type) pairs linked by at least one wire, in both directions."""
    types = {c.id: c.type for c in components}
    pairs: Set[Tuple[str, str]] = set()
    for conn in connections:
        ta, tb = types.get(conn.a), types.get(conn.b)
        if ta is None or tb is None:
            continue
        pairs.add((ta, tb))
        pairs.add((tb, ta))
    return pairs


def structural_score(
    required: Sequence[Edge],
    components: Sequence[PlacedComponent],
    connections: Sequence[Connection],
    errors: ErrorLog,
) -> int:
    edges = _unique_edges(required)
    if not edges:
        return 100
    adjacent = _adjacent_types(components, connections)
    matched = 0
    for a, b in edges:
        if (a, b) in adjacent:
            matched += 1
        else:
            errors.add(f"Missing connection: {a.upper()} → {b.upper()}")
    return round_half_up(matched / len(edges) * 100)


def limiter_score(value: Optional[float], low: float, high: float) -> int:
    """Calibration score of one resistor value against [low, high]."""
    if value is not None and low <= value <= high:
        return 100
    if value is None or value <= 0:
        return 0
    mid = (low + high) / 2
    width = (high - low) or 1
    return round_half_up(max(0.0, 1 - abs(value - mid) / (width * 3)) * 60)


def calibration_score(components: Sequence[PlacedComponent], low: float, high: float, errors: ErrorLog) -> int:
    resistors = [c for c in components if c.type == LIMITER]
    if not resistors:
        errors.add("No resistor placed — circuit needs current limiting")
        return 0
    best = 0
    for r in resistors:
        best = max(best, limiter_score(r.resistor_value, low, high))
        value = r.resistor_value or 0
        if value > high:
            errors.add(f"Resistor {format_resistor(value)} too high — need ≤ {format_resistor(high)}")
        elif value < low:
            errors.add(f"Resistor {format_resistor(value)} too low — need ≥ {format_resistor(low)}")
    return best


def _fmt_number(x: float) -> str:
    return f"{x:g}"


def resource_score(
    components: Sequence[PlacedComponent],
    supply: PowerSupply,
    scenario: ResolvedScenario,
    errors: ErrorLog,
) -> int:
    has_power = any(c.type == POWER for c in components)
    has_gnd = any(c.type == GROUND for c in components)
    if not has_power:
        errors.add("Missing power supply component")
    if not has_gnd:
        errors.add("Missing GND component")
    if not (has_power and has_gnd):
        return 0
    req = scenario.required_power
    score = 0
    if supply.voltage >= req.min_voltage:
        score += 50
    else:
        errors.add(f"Supply {_fmt_number(supply.voltage)}V below {_fmt_number(req.min_voltage)}V minimum")
    if supply.current >= req.min_current:
        score += 50
    else:
        errors.add(f"Supply {_fmt_number(supply.current)}mA below {_fmt_number(req.min_current)}mA minimum")
    return score


def needs_controller(scenario: ResolvedScenario) -> bool:
    if scenario.required_gpio:
        return True
    return any(CONTROLLER in edge for edge in scenario.required_connections)


class ConnectionGraphValidator:
    """Stateless grader; `validate` is pure for identical inputs."""

    def validate(
        self,
        components: Sequence[PlacedComponent],
        connections: Sequence[Connection],
        supply: PowerSupply,
        scenario: ResolvedScenario,
    ) -> ValidationResult:
        errors = ErrorLog()
        low, high = scenario.resistor_range

        structural = structural_score(scenario.required_connections, components, connections, errors)
        calibration = calibration_score(components, low, high, errors)
        resource = resource_score(components, supply, scenario, errors)

        if needs_controller(scenario):
            controllers = [c for c in components if c.type == CONTROLLER]
            if not controllers:
                errors.add("No ESP32 placed — microcontroller required")
                structural = max(0, structural - 20)
            elif scenario.required_gpio and not any(c.gpio_pin == scenario.required_gpio for c in controllers):
                actual = ", ".join(str(c.gpio_pin) for c in controllers)
                errors.add(f"GPIO {actual} incorrect — scenario requires {scenario.required_gpio}")
                structural = max(0, structural - 10)
            else:
                structural = min(100, structural + 10)

        if scenario.required_sensor_type:
            sensors = [c for c in components if c.type == SENSOR]
            if not sensors:
                errors.add(f"No sensor placed — {scenario.required_sensor_type} required")
            elif not any(s.sensor_type == scenario.required_sensor_type for s in sensors):
                actual = ", ".join(str(s.sensor_type) for s in sensors)
                errors.add(f"Sensor type {actual} incorrect — need {scenario.required_sensor_type}")
            else:
                structural = min(100, structural + 5)

        for comp in components:
            if not any(conn.touches(comp.id) for conn in connections):
                errors.add(f"{comp.label} is floating — not connected")

        success = len(errors) == 0
        if success:
            feedback = self._success_feedback(components, scenario)
        else:
            feedback = almost_feedback(len(errors), scenario.hint)

        return ValidationResult(
            success=success,
            structural=int(clamp(structural)),
            calibration=int(clamp(calibration)),
            resource=int(clamp(resource)),
            errors=errors.freeze(),
            feedback=feedback,
        )

    @staticmethod
    def _success_feedback(components: Sequence[PlacedComponent], scenario: ResolvedScenario) -> str:
        resistors = [c for c in components if c.type == LIMITER]
        parts = ["🎉 Perfect! All connections correct"]
        if resistors:
            parts.append(f"resistor {format_resistor(resistors[0].resistor_value or 0)} is optimal")
        if scenario.required_gpio:
            parts.append(f"{scenario.required_gpio} is properly configured")
        return ", ".join(parts) + "."


def validate_circuit(
    components: Sequence[PlacedComponent],
    connections: Sequence[Connection],
    supply: PowerSupply,
    scenario: ResolvedScenario,
) -> ValidationResult:
    return ConnectionGraphValidator().validate(components, connections, supply, scenario)
