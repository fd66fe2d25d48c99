from __future__ import annotations

"""Tiny pub/sub event bus used by the state machines."""

from typing import Any, Callable, Dict, List

from .explain import warn

# Events emitted by the engine
VALIDATED = "validated"
TERMINAL = "terminal"
RESET = "reset"
TIMER_EXTENDED = "timer_extended"


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception as e:
                # A broken observer must not break a state transition
                warn(f"handler for '{event}' failed: {e}")
