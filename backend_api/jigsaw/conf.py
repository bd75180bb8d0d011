from __future__ import annotations

from typing import Any, Dict

from django.conf import settings

DEFAULTS: Dict[str, Any] = {
    "TICK_SECONDS": 1,
    "HINT_INTERVAL_SECONDS": 5,
    "HINT_LIMIT": 2,
    "HINTS_PER_SESSION": 3,
    "MOVE_THROTTLE_SECONDS": 0.05,
    "DEFAULT_DIFFICULTY": "4x4",
    "DEFAULT_TIME_LIMIT": 300,
}


# PUBLIC_INTERFACE
def get_setting(name: str) -> Any:
    """Return settings.JIGSAW[name], falling back to the engine default.

    Read on every call so tests can use override_settings.
    """
    if name not in DEFAULTS:
        raise KeyError(f"Unknown jigsaw setting: {name!r}")
    overrides = getattr(settings, "JIGSAW", None) or {}
    return overrides.get(name, DEFAULTS[name])
