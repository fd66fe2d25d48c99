from __future__ import annotations

"""Component vocabulary for the circuit builder."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


# Closed set of component types
CONTROLLER = "esp32"
LIMITER = "resistor"
ACTUATOR = "led"
SENSOR = "sensor"
POWER = "power"
GROUND = "gnd"

COMPONENT_TYPES = (CONTROLLER, LIMITER, ACTUATOR, SENSOR, POWER, GROUND)

LABELS: Dict[str, str] = {
    CONTROLLER: "ESP32",
    LIMITER: "Resistor",
    ACTUATOR: "LED",
    SENSOR: "Sensor",
    POWER: "Power 3.3V",
    GROUND: "GND",
}

SENSOR_TYPES = ("DHT11", "Ultrasonic", "LDR")

# Standard resistor magnitudes (ohms)
RESISTOR_VALUES: List[int] = [10, 100, 220, 330, 470, 1000, 4700, 10000, 47000, 100000]

GPIO_PINS = (
    "GPIO2", "GPIO4", "GPIO5", "GPIO12", "GPIO13", "GPIO14",
    "GPIO15", "GPIO16", "GPIO17", "GPIO18", "GPIO19",
    "GPIO21", "GPIO22", "GPIO23", "GPIO25", "GPIO26", "GPIO27",
    "GPIO32", "GPIO33", "GPIO34", "GPIO35", "GPIO36", "GPIO39",
)

# Attribute defaults on placement
DEFAULT_RESISTOR_VALUE = 220
DEFAULT_SENSOR_TYPE = "DHT11"
DEFAULT_GPIO_PIN = "GPIO2"


def format_resistor(ohms: float) -> str:
    """Format a resistance for display, e.g. 220Ω or 4.7kΩ."""
    if ohms >= 1000:
        k = ohms / 1000
        return f"{k:g}kΩ"
    return f"{ohms:g}Ω"


@dataclass(frozen=True)
class PlacedComponent:
    """A node on the player's board. Attribute edits produce a new record."""

    id: str
    type: str
    label: str
    x: int = 0
    y: int = 0
    resistor_value: Optional[float] = None
    sensor_type: Optional[str] = None
    gpio_pin: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "type": self.type, "label": self.label, "x": self.x, "y": self.y}
        if self.resistor_value is not None:
            data["resistor_value"] = self.resistor_value
        if self.sensor_type is not None:
            data["sensor_type"] = self.sensor_type
        if self.gpio_pin is not None:
            data["gpio_pin"] = self.gpio_pin
        return data


@dataclass(frozen=True)
class Connection:
    """An unordered wire between two placed components."""

    id: str
    a: str
    b: str

    def touches(self, component_id: str) -> bool:
        return component_id in (self.a, self.b)

    def links(self, x: str, y: str) -> bool:
        return (self.a == x and self.b == y) or (self.a == y and self.b == x)


@dataclass(frozen=True)
class PowerSupply:
    voltage: float = 3.3  # V
    current: float = 500  # mA


def make_component(component_id: str, ctype: str, x: int = 0, y: int = 0) -> PlacedComponent:
    """Create a component with the per-type attribute defaults."""
    if ctype not in COMPONENT_TYPES:
        raise KeyError(f"Unknown component type: {ctype}")
    return PlacedComponent(
        id=component_id,
        type=ctype,
        label=LABELS[ctype],
        x=x,
        y=y,
        resistor_value=DEFAULT_RESISTOR_VALUE if ctype == LIMITER else None,
        sensor_type=DEFAULT_SENSOR_TYPE if ctype == SENSOR else None,
        gpio_pin=DEFAULT_GPIO_PIN if ctype == CONTROLLER else None,
    )
