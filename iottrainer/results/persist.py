from __future__ import annotations

"""Best-effort persistence of finished test sessions.

- `post_session` sends the session payload to a remote endpoint. Any
  failure is traced and swallowed; the caller only sees None.
- `append_local_session` keeps a JSON list of sessions on disk:

[
  {"id": "session-<ms>-<rand>", "savedAt": "<iso>", "mode": ..., ...},
  ...
]

New sessions are appended; an unreadable file (bad JSON or bad UTF-8) is
backed up once and a fresh list is started. Local entries also carry the
full DecisionRecords under `records` so the log can be re-analyzed.
"""

import json
import random
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests

from ..app.explain import trace as xtrace, warn

DEFAULT_TIMEOUT_S = 8.0


def post_session(endpoint: str, payload: Dict[str, Any], timeout_s: float = DEFAULT_TIMEOUT_S) -> Optional[Dict[str, Any]]:
    """POST the payload; return the decoded response body, or None on any failure."""
    try:
        res = requests.post(endpoint, json=payload, timeout=timeout_s)
        res.raise_for_status()
        try:
            body = res.json()
        except ValueError:
            body = {}
        xtrace("session_saved", {"endpoint": endpoint, "status": res.status_code})
        return body if isinstance(body, dict) else {"data": body}
    except Exception as e:
        # Never surfaces to the player
        xtrace("session_save_failed", {"endpoint": endpoint, "error": str(e)})
        warn(f"session save failed: {e}")
        return None


def new_session_id(now_ms: Optional[int] = None, rng: Optional[random.Random] = None) -> str:
    ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    suffix = "".join((rng or random).choice("abcdefghijklmnopqrstuvwxyz0123456789") for _ in range(6))
    return f"session-{ms}-{suffix}"


def _load_sessions(p: Path) -> List[Dict[str, Any]]:
    if not p.exists():
        return []
    raw = p.read_bytes()
    try:
        text = raw.decode("utf-8")
        data = json.loads(text) if text.strip() else []
    except ValueError:
        data = None
    if isinstance(data, list):
        return data
    # Keep a copy of whatever was there before starting over
    backup = p.with_name(f"{p.stem}.backup-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}{p.suffix}")
    backup.write_bytes(raw)
    return []


def append_local_session(path: str, payload: Dict[str, Any], session_id: Optional[str] = None) -> Dict[str, Any]:
    """Append one session to the local JSON log and return the stored entry."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    sessions = _load_sessions(p)
    entry = {
        "id": session_id or new_session_id(),
        **payload,
        "savedAt": datetime.now(timezone.utc).isoformat(),
    }
    sessions.append(entry)
    with p.open("w", encoding="utf-8") as f:
        json.dump(sessions, f, indent=2, ensure_ascii=False)
    return entry


def load_local_sessions(path: str) -> List[Dict[str, Any]]:
    p = Path(path)
    if not p.exists():
        return []
    try:
        data = json.loads(p.read_bytes().decode("utf-8"))
    except ValueError:
        return []
    return data if isinstance(data, list) else []
