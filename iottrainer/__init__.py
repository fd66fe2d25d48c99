"""iottrainer package initialization.

Scenario validation and adaptive progression for the IoT training games
(Circuit Debug and Crisis Sequence). The public entry points live in
`iottrainer.app.session_manager` and the `iottrainer` CLI.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
