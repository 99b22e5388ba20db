"""
bot/behaviors.py – the features activated on spawn

Each behavior gets the live connection, its own settings block and the
connection's :class:`TimerScope`.  Counters (chat index, waypoint index)
live on small per-activation objects, so a reconnect always starts them
from zero.
"""

from __future__ import annotations

import logging
from typing import Sequence

import config
from bot.network.connection import Connection, Entity, Vec3
from bot.settings import (
    AntiAfkSettings,
    AutoAuthSettings,
    ChatMessagesSettings,
    HitSettings,
    PositionSettings,
)
from bot.timers import TimerScope

log = logging.getLogger(__name__)


# ── Auto-auth ────────────────────────────────────────────────────────

def start_auto_auth(conn: Connection, auth: AutoAuthSettings, scope: TimerScope) -> None:
    """Send /register and /login once, shortly after spawn."""
    log.info("[auth:start] started auto-auth module")
    password = auth.password

    def _send() -> None:
        conn.chat(f"/register {password} {password}")
        conn.chat(f"/login {password}")
        log.info("[auth:sent] authentication commands executed")

    scope.call_later(config.AUTH_DELAY, _send)


# ── Scripted chat ────────────────────────────────────────────────────

class ChatLoop:
    """Cycles through *messages*, one per tick, wrapping forever."""

    def __init__(self, conn: Connection, messages: Sequence[str]) -> None:
        self._conn = conn
        self._messages = list(messages)
        self.index = 0

    def tick(self) -> None:
        self._conn.chat(self._messages[self.index])
        self.index = (self.index + 1) % len(self._messages)


def start_chat_messages(
    conn: Connection, chat: ChatMessagesSettings, scope: TimerScope,
) -> ChatLoop | None:
    log.info("[chat:start] started chat-messages module")
    if not chat.messages:
        log.warning("[chat:start] no messages configured – nothing to send")
        return None

    if not chat.repeat:
        for msg in chat.messages:
            conn.chat(msg)
        return None

    loop = ChatLoop(conn, chat.messages)
    scope.call_every(chat.repeat_delay, loop.tick)
    log.debug(
        f"[chat:repeat] {len(chat.messages)} message(s) every {chat.repeat_delay}s"
    )
    return loop


# ── Move to target ───────────────────────────────────────────────────

def move_to_target(conn: Connection, position: PositionSettings) -> None:
    log.info(
        f"[move:start] moving to target location "
        f"({position.x}, {position.y}, {position.z})"
    )
    conn.set_goal_block(position.x, position.y, position.z)


# ── Anti-afk ─────────────────────────────────────────────────────────

def is_attackable(entity: Entity) -> bool:
    """Mobs only: skip players, items, orbs and other non-creatures."""
    return entity.type not in config.NON_ATTACKABLE_TYPES


def hit_once(conn: Connection, hit: HitSettings) -> None:
    if hit.attack_mobs:
        target = conn.nearest_entity(is_attackable)
        if target is not None:
            conn.attack(target)
            return
    conn.swing_arm("right")


def rotate_once(conn: Connection) -> None:
    # No wraparound: the server accepts any yaw
    conn.look(conn.yaw + config.ROTATE_STEP, conn.pitch, True)


def circle_waypoints(origin: Vec3, radius: float) -> list[Vec3]:
    """Four points around *origin*: +x, +z, -x, -z (y unchanged)."""
    x, y, z = origin
    return [
        Vec3(x + radius, y, z),
        Vec3(x, y, z + radius),
        Vec3(x - radius, y, z),
        Vec3(x, y, z - radius),
    ]


class CircleWalk:
    """Sends an XZ goal for the next waypoint on every tick.

    Waypoints are captured once from the position at activation; they are
    not re-centred if the bot gets pushed around.
    """

    def __init__(self, conn: Connection, radius: float) -> None:
        self._conn = conn
        self.waypoints = circle_waypoints(conn.position, radius)
        self.index = 0

    def tick(self) -> None:
        point = self.waypoints[self.index]
        self._conn.set_goal_xz(point.x, point.z)
        self.index = (self.index + 1) % len(self.waypoints)


def start_anti_afk(
    conn: Connection, anti_afk: AntiAfkSettings, scope: TimerScope,
) -> CircleWalk | None:
    """Enable every configured anti-afk sub-behavior.  Returns the
    circle-walk driver when that one is on."""
    log.info("[afk:start] started anti-afk module")

    if anti_afk.sneak:
        conn.set_control_state("sneak", True)

    if anti_afk.jump:
        conn.set_control_state("jump", True)

    if anti_afk.hit.enabled:
        scope.call_every(anti_afk.hit.delay, hit_once, conn, anti_afk.hit)

    if anti_afk.rotate:
        scope.call_every(config.ROTATE_INTERVAL, rotate_once, conn)

    walker = None
    if anti_afk.circle_walk.enabled:
        walker = CircleWalk(conn, anti_afk.circle_walk.radius)
        scope.call_every(config.CIRCLE_WALK_INTERVAL, walker.tick)
        log.debug(f"[afk:circle] waypoints {[str(p) for p in walker.waypoints]}")
    return walker
