from __future__ import annotations

"""Command records accepted by `ProgressionStateMachine.dispatch`.

Each command maps onto one transition method. Commands can be built from
plain dicts (e.g. a YAML play script) with `command_from_json`.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Type


@dataclass(frozen=True)
class PlaceComponent:
    type: str
    x: int = 0
    y: int = 0
    id: Optional[str] = None


@dataclass(frozen=True)
class MoveComponent:
    id: str
    x: int
    y: int


@dataclass(frozen=True)
class RemoveComponent:
    id: str


@dataclass(frozen=True)
class UpdateComponent:
    id: str
    resistor_value: Optional[float] = None
    sensor_type: Optional[str] = None
    gpio_pin: Optional[str] = None


@dataclass(frozen=True)
class Connect:
    a: str
    b: str


@dataclass(frozen=True)
class Disconnect:
    id: str


@dataclass(frozen=True)
class SetPowerSupply:
    voltage: Optional[float] = None
    current: Optional[float] = None


@dataclass(frozen=True)
class PlaceAction:
    action_id: str
    slot: int


@dataclass(frozen=True)
class ClearSlot:
    slot: int


@dataclass(frozen=True)
class ReturnToPool:
    action_id: str


@dataclass(frozen=True)
class Validate:
    pass


@dataclass(frozen=True)
class Tick:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Reroll:
    pass


@dataclass(frozen=True)
class SelectScenario:
    index: int


@dataclass(frozen=True)
class Advance:
    pass


@dataclass(frozen=True)
class ExtendTimer:
    seconds: int
    cap: int


COMMANDS: Dict[str, Type[Any]] = {
    "place": PlaceComponent,
    "move": MoveComponent,
    "remove": RemoveComponent,
    "update": UpdateComponent,
    "connect": Connect,
    "disconnect": Disconnect,
    "power": SetPowerSupply,
    "place_action": PlaceAction,
    "clear_slot": ClearSlot,
    "return_to_pool": ReturnToPool,
    "validate": Validate,
    "tick": Tick,
    "reset": Reset,
    "reroll": Reroll,
    "select": SelectScenario,
    "advance": Advance,
    "extend_timer": ExtendTimer,
}


def command_from_json(data: Dict[str, Any]) -> Any:
    """Build a command from {"cmd": name, ...fields}."""
    name = str(data.get("cmd", ""))
    if name not in COMMANDS:
        raise KeyError(f"Unknown command: {name}")
    cls = COMMANDS[name]
    allowed = {f.name for f in fields(cls)}
    kwargs = {k: v for k, v in data.items() if k in allowed}
    return cls(**kwargs)
