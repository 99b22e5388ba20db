"""
bot/controller.py – connection lifecycle and feature activation

The controller is a two-state machine (disconnected / connected, with
"connected" split into pending and active).  Every transition it can take
is listed in :data:`TRANSITIONS`; event handlers go through
:meth:`BotController._transition` so an unexpected event is logged and
dropped instead of silently mutating state.

Each connect attempt gets a fresh connection handle and a fresh
:class:`TimerScope`.  The scope is closed as soon as the connection ends,
so behavior timers never outlive the handle they were started for.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Any, Callable, Optional

from bot import behaviors
from bot.network.connection import Connection
from bot.settings import ConfigurationError, Settings, validate_settings
from bot.text import parse_kick_reason
from bot.timers import TimerScope

log = logging.getLogger(__name__)


class BotState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"       # handle created, waiting for spawn
    ACTIVE = "active"               # spawned, behaviors running


class InvalidTransition(Exception):
    """Raised for a (state, event) pair missing from TRANSITIONS."""


_D, _C, _A = BotState.DISCONNECTED, BotState.CONNECTING, BotState.ACTIVE

TRANSITIONS: dict[tuple[BotState, str], BotState] = {
    (_D, "connect"): _C,
    (_C, "spawn"): _A,
    (_A, "chat"): _A,
    (_A, "goal_reached"): _A,
    (_A, "death"): _A,
    (_A, "end"): _D,
    (_C, "end"): _D,            # dropped during login
    (_A, "kicked"): _D,
    (_C, "kicked"): _D,         # rejected during login (whitelist, ban …)
    (_D, "error"): _D,
    (_C, "error"): _C,
    (_A, "error"): _A,
}


def next_state(state: BotState, event: str) -> BotState:
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransition(f"no transition for '{event}' in state {state.value}") from None


class BotController:
    """Owns the current connection and wires the behaviors to it."""

    def __init__(
        self,
        settings: Settings,
        connect_fn: Callable[[Settings], Connection],
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.settings = settings
        self._connect_fn = connect_fn
        self._loop = loop

        self.state = BotState.DISCONNECTED
        self.connection: Optional[Connection] = None
        self.scope: Optional[TimerScope] = None
        self.attempts = 0
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._stopped = False

    # ── State helpers ─────────────────────────────────────────────

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    def _transition(self, event: str) -> bool:
        try:
            new_state = next_state(self.state, event)
        except InvalidTransition as exc:
            log.debug(f"[state:ignored] {exc}")
            return False
        if new_state != self.state:
            log.debug(f"[state:transition] {self.state.value} → {new_state.value} ({event})")
        self.state = new_state
        return True

    def _is_current(self, conn: Connection) -> bool:
        if conn is not self.connection:
            log.debug("[state:stale] event from a discarded connection ignored")
            return False
        return True

    # ── Connect / reconnect ───────────────────────────────────────

    def connect(self) -> None:
        """Open a new connection and register every handler on it.

        Raises :class:`ConfigurationError` before anything is opened if the
        settings lack a username or host.
        """
        validate_settings(self.settings)
        if self.state != BotState.DISCONNECTED:
            raise InvalidTransition(f"connect requested while {self.state.value}")

        self._stopped = False
        self.attempts += 1
        scope = TimerScope(self._loop, name=f"connection-{self.attempts}")

        try:
            conn = self._connect_fn(self.settings)
        except Exception as exc:
            log.error(f"Failed to create bot: {exc}")
            scope.close()
            self._schedule_reconnect()
            return

        self.connection = conn
        self.scope = scope
        self._register(conn)
        self._transition("connect")

    def _register(self, conn: Connection) -> None:
        conn.on("spawn", lambda *a: self._on_spawn(conn))
        conn.on("chat", lambda username, message, *a: self._on_chat(conn, username, message))
        conn.on("goal_reached", lambda *a: self._on_goal_reached(conn))
        conn.on("death", lambda *a: self._on_death(conn))
        conn.on("end", lambda reason=None, *a: self._on_end(conn, reason))
        conn.on("kicked", lambda reason=None, *a: self._on_kicked(conn, reason))
        conn.on("error", lambda exc=None, *a: self._on_error(conn, exc))

    def _schedule_reconnect(self) -> None:
        utils = self.settings.utils
        if self._stopped:
            return
        if not utils.auto_reconnect:
            log.warning("[reconnect:off] auto-reconnect disabled – bot stays offline")
            return
        if self._reconnect_handle is not None:
            return
        log.info(f"[reconnect:scheduled] reconnecting in {utils.auto_reconnect_delay}s")
        self._reconnect_handle = self._loop.call_later(
            utils.auto_reconnect_delay, self._reconnect,
        )

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        self.connection = None
        self.scope = None
        try:
            self.connect()
        except ConfigurationError as exc:
            log.error(f"Failed to create bot: {exc}")

    def _drop_connection(self) -> None:
        if self.scope is not None:
            self.scope.close()

    def stop(self) -> None:
        """Cancel any pending reconnect and quit the current connection."""
        self._stopped = True
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None
        self._drop_connection()
        conn, self.connection = self.connection, None
        if conn is not None:
            try:
                conn.quit("disconnect.quitting")
            except Exception:
                log.exception("[bot:stop] error while quitting")
        self.state = BotState.DISCONNECTED

    # ── Event handlers ────────────────────────────────────────────

    def _on_spawn(self, conn: Connection) -> None:
        if not self._is_current(conn):
            return
        if self.state == BotState.ACTIVE:
            # mineflayer re-emits spawn after every respawn
            return
        if not self._transition("spawn"):
            return
        log.info("Bot joined the server")
        self._activate(conn)

    def _activate(self, conn: Connection) -> None:
        utils = self.settings.utils
        scope = self.scope

        if utils.auto_auth.enabled:
            behaviors.start_auto_auth(conn, utils.auto_auth, scope)

        if utils.chat_messages.enabled:
            behaviors.start_chat_messages(conn, utils.chat_messages, scope)

        if self.settings.position.enabled:
            behaviors.move_to_target(conn, self.settings.position)

        if utils.anti_afk.enabled:
            behaviors.start_anti_afk(conn, utils.anti_afk, scope)

    def _on_chat(self, conn: Connection, username: str, message: str) -> None:
        if not self._is_current(conn) or not self._transition("chat"):
            return
        if self.settings.utils.chat_log:
            log.info(f"<{username}> {message}")

    def _on_goal_reached(self, conn: Connection) -> None:
        if not self._is_current(conn) or not self._transition("goal_reached"):
            return
        if self.settings.position.enabled:
            log.info(f"Bot arrived at target location: {conn.position}")

    def _on_death(self, conn: Connection) -> None:
        if not self._is_current(conn) or not self._transition("death"):
            return
        log.warning(f"Bot died and respawned at {conn.position}")

    def _on_end(self, conn: Connection, reason: Any = None) -> None:
        if not self._is_current(conn):
            return
        log.info(f"[bot:end] disconnected ({reason or 'no reason'})")
        self._drop_connection()
        # Already DISCONNECTED when a kick came first
        if self.state != BotState.DISCONNECTED:
            self._transition("end")
        self._schedule_reconnect()
        # Nothing follows end; release the old handle's listeners
        try:
            conn.close()
        except Exception:
            log.exception("[bot:end] error while releasing the connection")

    def _on_kicked(self, conn: Connection, reason: Any = None) -> None:
        if not self._is_current(conn):
            return
        log.warning(f"Bot was kicked from the server. Reason: {parse_kick_reason(reason)}")
        self._drop_connection()
        self._transition("kicked")

    def _on_error(self, conn: Connection, exc: Any = None) -> None:
        if not self._is_current(conn):
            return
        self._transition("error")
        log.error(str(exc) if exc is not None else "unknown error")
