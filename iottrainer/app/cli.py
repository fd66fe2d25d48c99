from __future__ import annotations

"""CLI for iottrainer using SessionManager and the scenario banks."""

import argparse
import json
from pathlib import Path
from typing import Any

import yaml

from analytics.summary import analyze_performance
from storage.store import load_all

from .. import __version__
from ..config.config import load_config, validate_config
from ..engine.commands import command_from_json
from ..engine.state import MODE_CIRCUIT, MODE_CRISIS
from ..scenarios.bank import load_circuit_templates, load_crisis_scenarios
from ..scenarios.randomizer import ScenarioRandomizer
from ..util.randomness import make_rng, seed_if_needed
from .session_manager import SessionManager


def _dump(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _enable_explain(flag: bool, events: str | None = None) -> None:
    if flag:
        from .explain import enable as explain_enable
        explain_enable(True, events.split(",") if events else None)


def _cmd_list(cfg: dict, mode: str) -> int:
    banks = cfg["scenarios"]
    if mode in (MODE_CIRCUIT, "all"):
        for t in load_circuit_templates(Path(banks["circuit_bank"])):
            print(f"{t.id}: {t.title} [{t.difficulty}] edges={len(t.required_connections)}")
    if mode in (MODE_CRISIS, "all"):
        for s in load_crisis_scenarios(Path(banks["crisis_bank"])):
            print(f"{s.id}: {s.title} [{s.difficulty}] steps={s.sequence_length} timer={s.timer_seconds}s")
    return 0


def _cmd_roll(cfg: dict, template_id: str, count: int, seed: int | None) -> int:
    templates = {t.id: t for t in load_circuit_templates(Path(cfg["scenarios"]["circuit_bank"]))}
    if template_id not in templates:
        print(f"Unknown template: {template_id}")
        return 2
    randomizer = ScenarioRandomizer(make_rng(seed))
    _dump([randomizer.resolve(templates[template_id]).to_json() for _ in range(max(1, count))])
    return 0


def _load_script(path: str) -> dict:
    with Path(path).open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if isinstance(data, list):
        data = {"commands": data}
    if not isinstance(data, dict) or not isinstance(data.get("commands", []), list):
        raise ValueError(f"{path}: expected a mapping with a 'commands' list")
    return data


def _cmd_play(cfg: dict, mode: str, script_path: str, seed: int | None, save: bool) -> int:
    script = _load_script(script_path)
    sm = SessionManager(cfg, rng=make_rng(seed))
    pool = sm.load_pool(mode)
    wanted = script.get("scenarios")
    if wanted:
        by_id = {p.id: p for p in pool}
        missing = [i for i in wanted if i not in by_id]
        if missing:
            print(f"Unknown scenario ids: {', '.join(missing)}")
            return 2
        machine = sm.start_session(mode, [by_id[i] for i in wanted], shuffle=False)
    else:
        machine = sm.start_session(mode)

    for i, raw in enumerate(script.get("commands", []), 1):
        command = command_from_json(raw)
        out = machine.dispatch(command)
        if hasattr(out, "to_json"):
            print(f"[{i}] {raw.get('cmd')}: {out.feedback}")

    if not save:
        cfg["persistence"]["enabled"] = False
    _dump({"final": machine.snapshot(), "session": sm.finish()})
    return 0


def _cmd_analyze(path: str, mode: str) -> int:
    p = Path(path)
    if p.is_dir():
        df = load_all(p)
        df = df[df["mode"].astype("string") == mode]
        decisions: Any = df
    else:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
        # Either a raw decision list or a local session log
        if data and isinstance(data, list) and "decisions" in data[0]:
            decisions = [d for s in data if s.get("mode") == mode for d in s.get("records", s["decisions"])]
        else:
            decisions = data
    _dump(analyze_performance(decisions, mode))
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="iottrainer")
    p.add_argument("--version", action="version", version=f"iottrainer {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    lp = sub.add_parser("list-scenarios")
    lp.add_argument("--config", default=None)
    lp.add_argument("--mode", choices=[MODE_CIRCUIT, MODE_CRISIS, "all"], default="all")

    rp = sub.add_parser("roll", help="Resolve a circuit template with random values")
    rp.add_argument("--config", default=None)
    rp.add_argument("--template", required=True)
    rp.add_argument("--count", type=int, default=1)
    rp.add_argument("--seed", type=int, default=None)
    rp.add_argument("--explain", action="store_true")
    rp.add_argument("--explain-events", default=None, help="Comma-separated trace events to show")

    pp = sub.add_parser("play", help="Replay a YAML command script against a test")
    pp.add_argument("--config", default=None)
    pp.add_argument("--mode", choices=[MODE_CIRCUIT, MODE_CRISIS], required=True)
    pp.add_argument("--script", required=True)
    pp.add_argument("--seed", type=int, default=None)
    pp.add_argument("--no-save", dest="save", action="store_false")
    pp.add_argument("--explain", action="store_true")
    pp.add_argument("--explain-events", default=None, help="Comma-separated trace events to show")

    ap = sub.add_parser("analyze", help="Analytics for stored decisions")
    ap.add_argument("--decisions", required=True, help="JSON decision list, local session log, or Parquet dir")
    ap.add_argument("--mode", choices=[MODE_CIRCUIT, MODE_CRISIS], default=MODE_CIRCUIT)

    args = p.parse_args(argv)
    seed_if_needed()

    if args.cmd == "analyze":
        return _cmd_analyze(args.decisions, args.mode)

    _enable_explain(getattr(args, "explain", False), getattr(args, "explain_events", None))
    cfg = validate_config(load_config(args.config))

    if args.cmd == "list-scenarios":
        return _cmd_list(cfg, args.mode)
    if args.cmd == "roll":
        return _cmd_roll(cfg, args.template, args.count, args.seed)
    if args.cmd == "play":
        return _cmd_play(cfg, args.mode, args.script, args.seed, args.save)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
