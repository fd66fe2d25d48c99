from __future__ import annotations

"""Adaptive assist: one-time timer extension when the pointer goes idle.

The tracker keeps a rolling window of pointer samples. When the average
speed inside the window stays below the threshold for the inactivity
window, the controller asks the machine for a timer extension. The
machine owns the `bonus_used` flag, so the bonus comes back only when the
scenario is reset or changed.
"""

import math
from collections import deque
from typing import Any, Deque, Dict, Optional, Tuple

from ..app.events import RESET
from ..app.explain import trace as xtrace
from .machine import ProgressionStateMachine

Sample = Tuple[float, float, float]


class PointerActivityTracker:
    def __init__(self, window_s: float = 5.0, speed_threshold: float = 5.0, inactivity_s: float = 7.0) -> None:
        self.window_s = float(window_s)
        self.speed_threshold = float(speed_threshold)
        self.inactivity_s = float(inactivity_s)
        self._samples: Deque[Sample] = deque()
        self._slow_since: Optional[float] = None
        self._speed_total = 0.0
        self._speed_count = 0

    def add_sample(self, x: float, y: float, t: float) -> None:
        self._samples.append((float(x), float(y), float(t)))
        self._trim(t)

    def _trim(self, now: float) -> None:
        cutoff = now - self.window_s
        while self._samples and self._samples[0][2] < cutoff:
            self._samples.popleft()

    def average_speed(self, now: float) -> float:
        """Path length over the window span, in px/s."""
        self._trim(now)
        pts = list(self._samples)
        dist = 0.0
        for (x0, y0, _), (x1, y1, _) in zip(pts, pts[1:]):
            dist += math.hypot(x1 - x0, y1 - y0)
        span = pts[-1][2] - pts[0][2] if len(pts) >= 2 else self.window_s
        return dist / span if span > 0 else 0.0

    def check(self, now: float) -> bool:
        """Return True once the speed stayed below threshold for the inactivity window."""
        speed = self.average_speed(now)
        self._speed_total += speed
        self._speed_count += 1
        if speed >= self.speed_threshold:
            self._slow_since = None
            return False
        if self._slow_since is None:
            self._slow_since = now
            return False
        return now - self._slow_since >= self.inactivity_s

    @property
    def mean_speed(self) -> float:
        if self._speed_count == 0:
            return 0.0
        return self._speed_total / self._speed_count

    def reset_stuck(self) -> None:
        self._slow_since = None

    def reset(self) -> None:
        self._samples.clear()
        self._slow_since = None
        self._speed_total = 0.0
        self._speed_count = 0


class AdaptiveAssistController:
    def __init__(
        self,
        machine: ProgressionStateMachine,
        cfg: Optional[Dict[str, Any]] = None,
        tracker: Optional[PointerActivityTracker] = None,
    ) -> None:
        assist = (cfg or {}).get("assist", {})
        self.machine = machine
        self.enabled = bool(assist.get("enabled", True))
        self.bonus_seconds = int(assist.get("bonus_seconds", 10))
        self.bonus_cap_seconds = int(assist.get("bonus_cap_seconds", 120))
        self.tracker = tracker or PointerActivityTracker(
            window_s=float(assist.get("window_s", 5.0)),
            speed_threshold=float(assist.get("speed_threshold", 5.0)),
            inactivity_s=float(assist.get("inactivity_s", 7.0)),
        )
        machine.bus.subscribe(RESET, self._on_reset)

    def _on_reset(self, _payload: Any) -> None:
        self.tracker.reset()

    def on_pointer(self, x: float, y: float, t: float) -> None:
        self.tracker.add_sample(x, y, t)

    def poll(self, now: float) -> bool:
        """Sample activity; returns True when an extension was granted."""
        st = self.machine.state
        if not self.enabled or st.terminal or not st.timer_running:
            return False
        stuck = self.tracker.check(now)
        self.machine.record_cursor_activity(self.tracker.mean_speed)
        if not stuck or st.bonus_used:
            return False
        self.tracker.reset_stuck()
        granted = self.machine.extend_timer(self.bonus_seconds, self.bonus_cap_seconds)
        if granted:
            xtrace("assist_granted", {"scenario": self.machine.scenario_id, "seconds": self.bonus_seconds})
        return granted

    def detach(self) -> None:
        self.machine.bus.unsubscribe(RESET, self._on_reset)
