from __future__ import annotations

"""Scenario records: circuit templates, resolved circuits, crisis scenarios.

Templates are authoring-time records loaded from the content banks. The
randomizer turns a ``ScenarioTemplate`` into a ``ResolvedScenario``; crisis
scenarios carry no pools and are played as loaded.
"""

from dataclasses import dataclass, field
from string import Formatter
from typing import Any, Dict, List, Optional, Tuple

from .components import COMPONENT_TYPES, SENSOR_TYPES


DIFFICULTIES = ("easy", "medium", "hard")

# Placeholders a template may reference in its narrative and hint
PLACEHOLDERS = ("GPIO", "RESISTOR_MIN", "RESISTOR_MAX", "SENSOR")

Edge = Tuple[str, str]


def _check_placeholders(text: str, where: str) -> None:
    for _literal, name, _spec, _conv in Formatter().parse(text):
        if name is None:
            continue
        if name not in PLACEHOLDERS:
            raise ValueError(f"Unknown placeholder '{{{name}}}' in {where}")


def _check_difficulty(value: str, where: str) -> str:
    if value not in DIFFICULTIES:
        raise ValueError(f"Unsupported difficulty '{value}' in {where}")
    return value


@dataclass(frozen=True)
class PowerRequirement:
    min_voltage: float
    min_current: float

    def to_json(self) -> Dict[str, Any]:
        return {"min_voltage": self.min_voltage, "min_current": self.min_current}

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PowerRequirement":
        return cls(
            min_voltage=float(data.get("min_voltage", 3.3)),
            min_current=float(data.get("min_current", 0)),
        )


@dataclass(frozen=True)
class RandomizableValues:
    """Pools the randomizer may draw from. Empty/None means use the default."""

    gpio_pins: Tuple[str, ...] = ()
    # (min_low, max_low, min_high, max_high)
    resistor_bounds: Optional[Tuple[float, float, float, float]] = None
    sensor_types: Tuple[str, ...] = ()

    @classmethod
    def from_json(cls, data: Dict[str, Any], where: str = "template") -> "RandomizableValues":
        bounds = data.get("resistor_bounds")
        if bounds is not None:
            if len(bounds) != 4:
                raise ValueError(f"resistor_bounds must have 4 values in {where}")
            bounds = tuple(float(b) for b in bounds)
            if bounds[0] > bounds[1] or bounds[2] > bounds[3]:
                raise ValueError(f"resistor_bounds are not ordered in {where}")
        sensors = tuple(str(s) for s in data.get("sensor_types") or ())
        for s in sensors:
            if s not in SENSOR_TYPES:
                raise ValueError(f"Unknown sensor type '{s}' in {where}")
        return cls(
            gpio_pins=tuple(str(p) for p in data.get("gpio_pins") or ()),
            resistor_bounds=bounds,  # type: ignore[arg-type]
            sensor_types=sensors,
        )


def _parse_edges(items: List[Any], where: str) -> Tuple[Edge, ...]:
    edges: List[Edge] = []
    for item in items or []:
        if isinstance(item, dict):
            a, b = str(item["from"]), str(item["to"])
        else:
            a, b = str(item[0]), str(item[1])
        for t in (a, b):
            if t not in COMPONENT_TYPES:
                raise ValueError(f"Unknown component type '{t}' in {where}")
        edges.append((a, b))
    return tuple(edges)


@dataclass(frozen=True)
class ScenarioTemplate:
    id: str
    title: str
    description: str
    difficulty: str
    required_connections: Tuple[Edge, ...]
    resistor_range: Tuple[float, float]
    required_power: PowerRequirement
    hint: str = ""
    required_gpio: Optional[str] = None
    background: str = ""
    randomizable: RandomizableValues = field(default_factory=RandomizableValues)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ScenarioTemplate":
        tid = str(data["id"])
        where = f"template '{tid}'"
        description = str(data.get("description", ""))
        hint = str(data.get("hint", ""))
        _check_placeholders(description, where)
        _check_placeholders(hint, where)
        rng = data.get("resistor_range", [100, 1000])
        low, high = float(rng[0]), float(rng[1])
        if low > high:
            raise ValueError(f"resistor_range is not ordered in {where}")
        gpio = data.get("required_gpio")
        return cls(
            id=tid,
            title=str(data.get("title", tid)),
            description=description,
            difficulty=_check_difficulty(str(data.get("difficulty", "easy")), where),
            required_connections=_parse_edges(data.get("required_connections", []), where),
            resistor_range=(low, high),
            required_power=PowerRequirement.from_json(data.get("required_power", {}) or {}),
            hint=hint,
            required_gpio=str(gpio) if gpio else None,
            background=str(data.get("background", "")),
            randomizable=RandomizableValues.from_json(data.get("randomizable_values", {}) or {}, where),
        )


@dataclass(frozen=True)
class ResolvedScenario:
    """A template bound to concrete values; immutable for its lifetime."""

    id: str
    title: str
    description: str
    difficulty: str
    required_connections: Tuple[Edge, ...]
    resistor_range: Tuple[float, float]
    required_power: PowerRequirement
    hint: str = ""
    required_gpio: Optional[str] = None
    required_sensor_type: Optional[str] = None
    background: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "difficulty": self.difficulty,
            "required_connections": [{"from": a, "to": b} for a, b in self.required_connections],
            "resistor_range": list(self.resistor_range),
            "required_power": self.required_power.to_json(),
            "required_gpio": self.required_gpio,
            "required_sensor_type": self.required_sensor_type,
            "hint": self.hint,
        }


# ─── Crisis sequence ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class TroubleshootAction:
    id: str
    label: str
    description: str


ACTION_POOL: Tuple[TroubleshootAction, ...] = (
    TroubleshootAction("ping-gateway", "Ping Gateway", "Test network connectivity to gateway"),
    TroubleshootAction("check-wifi", "Check Wi-Fi", "Verify Wi-Fi connection and signal"),
    TroubleshootAction("restart-node", "Restart Node", "Power-cycle the IoT device"),
    TroubleshootAction("verify-mqtt", "Verify MQTT", "Test MQTT broker connectivity"),
    TroubleshootAction("replace-sensor", "Replace Sensor", "Swap out the sensor hardware"),
    TroubleshootAction("check-power", "Check Power Supply", "Measure voltage and current draw"),
    TroubleshootAction("check-certs", "Check TLS Certs", "Verify SSL/TLS certificates"),
    TroubleshootAction("scan-spectrum", "Scan RF Spectrum", "Analyze wireless interference"),
    TroubleshootAction("check-logs", "Check System Logs", "Read serial/system log output"),
    TroubleshootAction("check-i2c", "Check I2C Bus", "Scan I2C addresses and wiring"),
    TroubleshootAction("check-firmware", "Check Firmware", "Verify firmware version and state"),
    TroubleshootAction("check-antenna", "Check Antenna", "Inspect antenna height and LOS"),
)

_ACTIONS_BY_ID = {a.id: a for a in ACTION_POOL}


@dataclass(frozen=True)
class CrisisScenario:
    id: str
    title: str
    description: str
    difficulty: str
    available_action_ids: Tuple[str, ...]
    optimal_sequence: Tuple[str, ...]
    timer_seconds: int
    character: str = ""
    explanation: str = ""
    hint: str = ""

    @property
    def sequence_length(self) -> int:
        return len(self.optimal_sequence)

    def available_actions(self) -> List[TroubleshootAction]:
        return [_ACTIONS_BY_ID[i] for i in self.available_action_ids if i in _ACTIONS_BY_ID]

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "difficulty": self.difficulty,
            "character": self.character,
            "available_action_ids": list(self.available_action_ids),
            "optimal_sequence": list(self.optimal_sequence),
            "sequence_length": self.sequence_length,
            "timer_seconds": self.timer_seconds,
            "hint": self.hint,
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CrisisScenario":
        sid = str(data["id"])
        where = f"crisis scenario '{sid}'"
        optimal = tuple(str(a) for a in data.get("optimal_sequence", []))
        if not optimal:
            raise ValueError(f"optimal_sequence is empty in {where}")
        length = int(data.get("sequence_length", len(optimal)))
        if length != len(optimal):
            raise ValueError(f"sequence_length {length} does not match optimal_sequence in {where}")
        if len(set(optimal)) != len(optimal):
            raise ValueError(f"optimal_sequence repeats an action in {where}")
        available = tuple(str(a) for a in data.get("available_action_ids", optimal))
        missing = [a for a in optimal if a not in available]
        if missing:
            raise ValueError(f"optimal actions {missing} not available in {where}")
        return cls(
            id=sid,
            title=str(data.get("title", sid)),
            description=str(data.get("description", "")),
            difficulty=_check_difficulty(str(data.get("difficulty", "easy")), where),
            available_action_ids=available,
            optimal_sequence=optimal,
            timer_seconds=int(data.get("timer_seconds", 60)),
            character=str(data.get("character", "")),
            explanation=str(data.get("explanation", "")),
            hint=str(data.get("hint", "")),
        )
