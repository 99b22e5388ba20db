"""
bot/network/event_bus.py – lightweight in-process pub/sub for connection events

Events are a name plus positional arguments, mirroring the Node emitter
the protocol client exposes:

    bus = EventBus(loop)
    bus.subscribe("chat", handler)          # handler(username, message)
    bus.emit("chat", "Steve", "hello")      # on the loop thread
    bus.emit_threadsafe("chat", ...)        # from the JS bridge thread

Handlers run synchronously, one after another, on the loop thread.
A failing handler is logged and does not stop the others.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable, Optional

log = logging.getLogger(__name__)

Handler = Callable[..., None]


class EventBus:
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._listeners: dict[str, list[Handler]] = defaultdict(list)

    # ── Subscribe / publish ───────────────────────────────────────────

    def subscribe(self, event_type: str, handler: Handler) -> None:
        self._listeners[event_type].append(handler)

    def unsubscribe_all(self) -> None:
        self._listeners.clear()

    def emit(self, event_type: str, *args: Any) -> None:
        for h in list(self._listeners.get(event_type, [])):
            try:
                h(*args)
            except Exception:
                log.exception(f"[bus:error] handler for '{event_type}' failed")

    def emit_threadsafe(self, event_type: str, *args: Any) -> None:
        """Schedule :meth:`emit` on the owning loop from another thread."""
        if self._loop is None or self._loop.is_closed():
            log.debug(f"[bus:drop] no loop for '{event_type}'")
            return
        self._loop.call_soon_threadsafe(self.emit, event_type, *args)
