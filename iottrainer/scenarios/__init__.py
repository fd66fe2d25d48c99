from .components import (
    COMPONENT_TYPES,
    CONTROLLER,
    LIMITER,
    ACTUATOR,
    SENSOR,
    POWER,
    GROUND,
    SENSOR_TYPES,
    RESISTOR_VALUES,
    Connection,
    PlacedComponent,
    PowerSupply,
    format_resistor,
    make_component,
)
from .templates import (
    ACTION_POOL,
    CrisisScenario,
    PowerRequirement,
    RandomizableValues,
    ResolvedScenario,
    ScenarioTemplate,
    TroubleshootAction,
)
from .randomizer import ScenarioRandomizer
from .bank import assemble_test, load_circuit_templates, load_crisis_scenarios

__all__ = [
    "COMPONENT_TYPES",
    "CONTROLLER",
    "LIMITER",
    "ACTUATOR",
    "SENSOR",
    "POWER",
    "GROUND",
    "SENSOR_TYPES",
    "RESISTOR_VALUES",
    "Connection",
    "PlacedComponent",
    "PowerSupply",
    "format_resistor",
    "make_component",
    "ACTION_POOL",
    "CrisisScenario",
    "PowerRequirement",
    "RandomizableValues",
    "ResolvedScenario",
    "ScenarioTemplate",
    "TroubleshootAction",
    "ScenarioRandomizer",
    "assemble_test",
    "load_circuit_templates",
    "load_crisis_scenarios",
]
