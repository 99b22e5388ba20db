"""
bot/network/mineflayer_client.py – Connection backed by mineflayer

mineflayer and mineflayer-pathfinder are Node packages; the ``javascript``
bridge (JSPyBridge) loads them into a Node child process and proxies calls.
JS events fire on the bridge thread and are hopped onto the asyncio loop
through :class:`EventBus.emit_threadsafe`, so every controller handler
runs on the loop thread.

Requires Node.js on PATH.  The first ``require`` installs the packages.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Callable, Optional

from javascript import On, off, require

from bot.network.connection import Entity, EntityFilter, Vec3
from bot.network.event_bus import EventBus
from bot.settings import Settings

log = logging.getLogger(__name__)

mineflayer = require("mineflayer")
pathfinder = require("mineflayer-pathfinder")


def _vec(js_vec) -> Vec3:
    return Vec3(float(js_vec.x), float(js_vec.y), float(js_vec.z))


def _entity(js_entity) -> Entity:
    return Entity(
        id=int(js_entity.id),
        type=str(js_entity.type),
        name=js_entity.name,
        position=_vec(js_entity.position),
    )


class MineflayerConnection:
    """Wraps one ``mineflayer.createBot`` instance."""

    def __init__(self, settings: Settings, loop: asyncio.AbstractEventLoop) -> None:
        self._bus = EventBus(loop)
        self._closed = False
        self._movements_set = False
        self._listeners: list[tuple[str, Callable]] = []

        options = {
            "username": settings.account.username,
            "auth": settings.account.auth,
            "host": settings.server.host,
            "port": settings.server.port,
        }
        if settings.account.password:
            options["password"] = settings.account.password
        if settings.server.version:
            options["version"] = settings.server.version

        log.info(
            f"[mineflayer:connect] {settings.account.username}@"
            f"{settings.server.host}:{settings.server.port} "
            f"(version={settings.server.version or 'auto'})"
        )
        self._bot = mineflayer.createBot(options)
        self._bot.loadPlugin(pathfinder.pathfinder)
        # Plain strings in chat/kick payloads, no colour codes
        self._bot.settings.colorsEnabled = False
        self._wire_events()

    def _listen(self, event: str) -> Callable:
        """Like ``@On(bot, event)`` but remembers the handler for :meth:`close`."""
        def decorator(fn: Callable) -> Callable:
            handler = On(self._bot, event)(fn)
            self._listeners.append((event, handler))
            return handler
        return decorator

    # ── JS → Python events ───────────────────────────────────────────

    def _wire_events(self) -> None:
        bot = self._bot
        bus = self._bus

        @self._listen("spawn")
        def _on_spawn(this, *args):
            # bot.version is only known after login, Movements needs it
            if not self._movements_set:
                movements = pathfinder.Movements(bot)
                bot.pathfinder.setMovements(movements)
                self._movements_set = True
            bus.emit_threadsafe("spawn")

        @self._listen("chat")
        def _on_chat(this, username, message, *args):
            bus.emit_threadsafe("chat", str(username), str(message))

        @self._listen("goal_reached")
        def _on_goal_reached(this, *args):
            bus.emit_threadsafe("goal_reached")

        @self._listen("death")
        def _on_death(this, *args):
            bus.emit_threadsafe("death")

        @self._listen("kicked")
        def _on_kicked(this, reason, logged_in=None, *args):
            # Chat components arrive as JS objects, unwrap to plain data
            if hasattr(reason, "valueOf"):
                reason = reason.valueOf()
            bus.emit_threadsafe("kicked", reason, bool(logged_in))

        @self._listen("end")
        def _on_end(this, reason=None, *args):
            bus.emit_threadsafe("end", reason)

        @self._listen("error")
        def _on_error(this, err, *args):
            message = getattr(err, "message", None) or str(err)
            bus.emit_threadsafe("error", RuntimeError(message))

    # ── Connection interface ─────────────────────────────────────────

    def on(self, event: str, handler: Callable[..., None]) -> None:
        self._bus.subscribe(event, handler)

    @property
    def position(self) -> Vec3:
        return _vec(self._bot.entity.position)

    @property
    def yaw(self) -> float:
        return float(self._bot.entity.yaw)

    @property
    def pitch(self) -> float:
        return float(self._bot.entity.pitch)

    def chat(self, message: str) -> None:
        self._bot.chat(message)

    def attack(self, entity: Entity) -> None:
        js_entity = self._bot.entities[entity.id]
        if js_entity is not None:
            self._bot.attack(js_entity)

    def swing_arm(self, hand: str = "right") -> None:
        self._bot.swingArm(hand, True)

    def set_control_state(self, control: str, state: bool) -> None:
        self._bot.setControlState(control, state)

    def look(self, yaw: float, pitch: float, force: bool = True) -> None:
        self._bot.look(yaw, pitch, force)

    def nearest_entity(self, predicate: EntityFilter) -> Optional[Entity]:
        # Filtered on the Python side: a Python callback handed to JS returns
        # a pending proxy, not a bool, so nearestEntity(filter) matches all.
        entities = self._bot.entities
        own_id = int(self._bot.entity.id)
        here = self.position
        best, best_dist = None, math.inf
        for key in entities:
            js_entity = entities[key]
            if js_entity is None or js_entity.position is None:
                continue
            candidate = _entity(js_entity)
            if candidate.id == own_id or not predicate(candidate):
                continue
            dist = math.dist(candidate.position, here)
            if dist < best_dist:
                best, best_dist = candidate, dist
        return best

    def set_goal_block(self, x: float, y: float, z: float) -> None:
        self._bot.pathfinder.setGoal(pathfinder.goals.GoalBlock(x, y, z))

    def set_goal_xz(self, x: float, z: float) -> None:
        self._bot.pathfinder.setGoal(pathfinder.goals.GoalXZ(x, z))

    def close(self) -> None:
        """Drop every Python and JS listener of this handle."""
        if self._closed:
            return
        self._closed = True
        self._bus.unsubscribe_all()
        for event, handler in self._listeners:
            off(self._bot, event, handler)
        self._listeners.clear()

    def quit(self, reason: str = "") -> None:
        if self._closed:
            return
        self.close()
        self._bot.quit(reason or "disconnect.quitting")


def open_mineflayer_connection(
    loop: asyncio.AbstractEventLoop,
) -> Callable[[Settings], MineflayerConnection]:
    """Return a connect function bound to *loop*, for :class:`BotController`."""
    def connect(settings: Settings) -> MineflayerConnection:
        return MineflayerConnection(settings, loop)
    return connect
