from __future__ import annotations

"""Scenario content banks (YAML) and randomized test assembly."""

import random
from pathlib import Path
from typing import Any, Dict, List, Sequence, TypeVar

import yaml

from ..util.randomness import shuffled
from .templates import CrisisScenario, ScenarioTemplate

T = TypeVar("T")

TEST_SIZE = 5


def _load_entries(path: Path, key: str) -> List[Dict[str, Any]]:
    with Path(path).open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    entries = data.get(key) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ValueError(f"{path}: expected a list under '{key}'")
    return entries


def _check_unique(ids: Sequence[str], path: Path) -> None:
    seen = set()
    for i in ids:
        if i in seen:
            raise ValueError(f"{path}: duplicate scenario id '{i}'")
        seen.add(i)


def load_circuit_templates(path: Path) -> List[ScenarioTemplate]:
    templates = [ScenarioTemplate.from_json(e) for e in _load_entries(path, "templates")]
    _check_unique([t.id for t in templates], path)
    return templates


def load_crisis_scenarios(path: Path) -> List[CrisisScenario]:
    scenarios = [CrisisScenario.from_json(e) for e in _load_entries(path, "scenarios")]
    _check_unique([s.id for s in scenarios], path)
    return scenarios


def assemble_test(pool: Sequence[T], rng: random.Random, size: int = TEST_SIZE) -> List[T]:
    """Shuffle the pool and take up to `size` unique entries."""
    if not pool:
        raise ValueError("cannot assemble a test from an empty pool")
    return shuffled(rng, pool)[: min(size, len(pool))]
