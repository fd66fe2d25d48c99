from __future__ import annotations

"""Scenario Randomizer: resolves circuit templates into playable scenarios.

Each pool on the template (GPIO labels, resistor bounds, sensor types) is
drawn once per resolution. Text placeholders are rendered through an
explicit substitution map, so a template can only reference the known
keys.
"""

import random
from typing import Dict, List, Optional, Tuple

from ..app.explain import trace as xtrace
from ..util.randomness import make_rng, pick
from .components import RESISTOR_VALUES, format_resistor
from .templates import ResolvedScenario, ScenarioTemplate


class ScenarioRandomizer:
    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng if rng is not None else make_rng()

    def resistor_range(self, bounds: Tuple[float, float, float, float]) -> Tuple[float, float]:
        """Draw a (low, high) pair of standard values from the 4-tuple bounds.

        low is drawn from standard values in [min_low, max_low], high from
        [min_high, max_high]. A bound with no standard value falls back to
        min_low / max_high respectively.
        """
        min_low, max_low, min_high, max_high = bounds
        low_candidates = [v for v in RESISTOR_VALUES if min_low <= v <= max_low]
        high_candidates = [v for v in RESISTOR_VALUES if min_high <= v <= max_high]
        low = pick(self.rng, low_candidates) if low_candidates else min_low
        high = pick(self.rng, high_candidates) if high_candidates else max_high
        if low > high:
            low, high = high, low
        return (low, high)

    @staticmethod
    def substitutions(gpio: Optional[str], rng_pair: Tuple[float, float], sensor: Optional[str]) -> Dict[str, str]:
        return {
            "GPIO": gpio or "",
            "RESISTOR_MIN": format_resistor(rng_pair[0]),
            "RESISTOR_MAX": format_resistor(rng_pair[1]),
            "SENSOR": sensor or "Sensor",
        }

    def resolve(self, template: ScenarioTemplate) -> ResolvedScenario:
        pools = template.randomizable

        gpio = template.required_gpio
        if pools.gpio_pins:
            gpio = pick(self.rng, pools.gpio_pins)

        rng_pair = template.resistor_range
        if pools.resistor_bounds is not None:
            rng_pair = self.resistor_range(pools.resistor_bounds)

        sensor: Optional[str] = None
        if pools.sensor_types:
            sensor = pick(self.rng, pools.sensor_types)

        subs = self.substitutions(gpio, rng_pair, sensor)
        resolved = ResolvedScenario(
            id=template.id,
            title=template.title,
            description=template.description.format_map(subs),
            difficulty=template.difficulty,
            required_connections=template.required_connections,
            resistor_range=rng_pair,
            required_power=template.required_power,
            hint=template.hint.format_map(subs),
            required_gpio=gpio,
            required_sensor_type=sensor,
            background=template.background,
        )
        xtrace("scenario_resolved", {"id": resolved.id, "gpio": gpio, "range": list(rng_pair), "sensor": sensor})
        return resolved

    def resolve_all(self, templates: List[ScenarioTemplate]) -> List[ResolvedScenario]:
        return [self.resolve(t) for t in templates]
