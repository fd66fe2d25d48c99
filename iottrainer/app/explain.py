from __future__ import annotations

"""Explain Mode: one-line traces of engine milestones.

Off by default. `enable(True)` turns every milestone on; passing `events`
restricts output to those names (e.g. only `validated` and `terminal`).
Warnings are not traces and always reach stderr.
"""

import json
import sys
from typing import Any, Dict, Iterable, Optional, Set

_ENABLED = False
_EVENTS: Optional[Set[str]] = None


def enable(flag: bool = True, events: Optional[Iterable[str]] = None) -> None:
    global _ENABLED, _EVENTS
    _ENABLED = bool(flag)
    _EVENTS = {e.strip() for e in events if e.strip()} if events else None


def enabled(event: Optional[str] = None) -> bool:
    if not _ENABLED:
        return False
    return event is None or _EVENTS is None or event in _EVENTS


def trace(event: str, payload: Dict[str, Any] | None = None) -> None:
    if not enabled(event):
        return
    line = json.dumps(payload or {}, separators=(",", ":"), ensure_ascii=False, default=str)
    print(f"[EXPLAIN] {event} :: {line}")


def warn(msg: str) -> None:
    print(f"[WARN] {msg}", file=sys.stderr)
