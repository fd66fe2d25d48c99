from __future__ import annotations

"""Configuration loading and validation for iottrainer.

This module loads YAML configuration, applies defaults, and validates
that enumerations and numeric knobs are sane for the engine and CLI.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import sys

import yaml


DIFFICULTIES = ("easy", "medium", "hard")
DEFAULT_TIMERS = {"easy": 90, "medium": 120, "hard": 150}
DEFAULT_MULTIPLIERS = {"easy": 1.0, "medium": 1.5, "hard": 2.0}
RESOURCES_DIR = Path(__file__).resolve().parent.parent / "resources"


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"ERROR: Config file not found: {path}", file=sys.stderr)
        sys.exit(1)


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load configuration from YAML or defaults.

    Args:
        path: Optional path to a YAML config. If None, use package defaults.

    Returns:
        A dictionary with configuration values.
    """
    if path:
        cfg = _load_yaml(Path(path))
    else:
        default_path = Path(__file__).with_name("defaults.yml")
        cfg = _load_yaml(default_path)
    return cfg


def _positive_int(section: Dict[str, Any], key: str, default: int) -> None:
    try:
        val = int(section.get(key, default))
    except (TypeError, ValueError):
        val = -1
    if val <= 0:
        print(f"WARNING: Invalid {key} '{section.get(key)}', using {default}.")
        val = default
    section[key] = val


def _positive_float(section: Dict[str, Any], key: str, default: float) -> None:
    try:
        val = float(section.get(key, default))
    except (TypeError, ValueError):
        val = -1.0
    if val <= 0:
        print(f"WARNING: Invalid {key} '{section.get(key)}', using {default}.")
        val = default
    section[key] = val


def validate_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply defaults and validate configuration values.

    Args:
        cfg: The raw configuration dictionary.

    Returns:
        The validated and merged configuration dictionary.
    """
    # Shallow defaults for missing sections
    cfg.setdefault("engine", {})
    cfg.setdefault("assist", {})
    cfg.setdefault("persistence", {})
    cfg.setdefault("scenarios", {})

    engine = cfg["engine"]
    assist = cfg["assist"]
    persist = cfg["persistence"]
    scenarios = cfg["scenarios"]

    engine.setdefault("max_attempts", 3)
    engine.setdefault("test_size", 5)
    engine.setdefault("timers_by_difficulty", dict(DEFAULT_TIMERS))
    engine.setdefault("difficulty_multipliers", dict(DEFAULT_MULTIPLIERS))
    engine.setdefault("power_supply", {"voltage": 3.3, "current": 500})

    assist.setdefault("enabled", True)
    assist.setdefault("speed_threshold", 5.0)
    assist.setdefault("window_s", 5.0)
    assist.setdefault("inactivity_s", 7.0)
    assist.setdefault("bonus_seconds", 10)
    assist.setdefault("bonus_cap_seconds", 120)

    persist.setdefault("enabled", True)
    persist.setdefault("endpoint", None)
    persist.setdefault("timeout_s", 8.0)
    persist.setdefault("local_path", "./.data/test-sessions.json")
    persist.setdefault("parquet_dir", "./storage/data")

    scenarios.setdefault("circuit_bank", str(RESOURCES_DIR / "circuit_scenarios.yml"))
    scenarios.setdefault("crisis_bank", str(RESOURCES_DIR / "crisis_scenarios.yml"))

    _positive_int(engine, "max_attempts", 3)
    _positive_int(engine, "test_size", 5)
    _positive_float(assist, "speed_threshold", 5.0)
    _positive_float(assist, "window_s", 5.0)
    _positive_float(assist, "inactivity_s", 7.0)
    _positive_int(assist, "bonus_seconds", 10)
    _positive_int(assist, "bonus_cap_seconds", 120)
    _positive_float(persist, "timeout_s", 8.0)

    # Difficulty tables must cover every difficulty
    timers = engine["timers_by_difficulty"]
    for d in DIFFICULTIES:
        if d not in timers:
            print(f"WARNING: No timer for difficulty '{d}', using {DEFAULT_TIMERS[d]}s.")
            timers[d] = DEFAULT_TIMERS[d]
        timers[d] = int(timers[d])
    unknown = [d for d in timers if d not in DIFFICULTIES]
    for d in unknown:
        print(f"WARNING: Unsupported difficulty '{d}' in timers, ignoring.")
        del timers[d]

    mults = engine["difficulty_multipliers"]
    for d in DIFFICULTIES:
        if d not in mults:
            print(f"WARNING: No multiplier for difficulty '{d}', using {DEFAULT_MULTIPLIERS[d]}.")
            mults[d] = DEFAULT_MULTIPLIERS[d]
        mults[d] = float(mults[d])

    psu = engine["power_supply"]
    psu.setdefault("voltage", 3.3)
    psu.setdefault("current", 500)
    psu["voltage"] = float(psu["voltage"])
    psu["current"] = float(psu["current"])

    if assist["bonus_cap_seconds"] < assist["bonus_seconds"]:
        print("WARNING: bonus_cap_seconds below bonus_seconds, raising cap.")
        assist["bonus_cap_seconds"] = assist["bonus_seconds"]

    return cfg
