from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Literal, Optional

logger = logging.getLogger(__name__)

SoundName = Literal["pickup", "place", "complete"]
NotificationVariant = Literal["default", "destructive"]

PlaySound = Callable[[SoundName], Any]
Notify = Callable[[Dict[str, str]], Any]


def notification(title: str, description: str, variant: NotificationVariant = "default") -> Dict[str, str]:
    """Build the payload handed to the notification collaborator."""
    return {"title": title, "description": description, "variant": variant}


# PUBLIC_INTERFACE
def fire_and_forget(callback: Optional[Callable[..., Any]], *args: Any) -> None:
    """Invoke an outward callback (sound, toast); its failures never reach the engine."""
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:
        logger.debug("Callback %r failed for %r", callback, args, exc_info=True)


def format_seconds(seconds: int) -> str:
    minutes, rest = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{rest:02d}"
