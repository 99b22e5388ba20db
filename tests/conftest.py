"""
Shared pytest fixtures: a deterministic loop, an in-memory connection and
a settings factory.  Nothing here touches the network or Node.
"""

import copy
import math
from collections import defaultdict

import pytest

from bot.network.connection import Entity, Vec3
from bot.settings import parse_settings


# ---------------------------------------------------------------------------
# Fake event loop
# ---------------------------------------------------------------------------

class FakeHandle:
    def __init__(self, when, seq, callback, args):
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeLoop:
    """Implements the ``call_later`` slice of asyncio with a manual clock.

    Usage:
        loop = FakeLoop()
        loop.call_later(1.0, fn)
        loop.advance(1.0)   # fn runs here
    """

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self._handles = []

    def time(self):
        return self.now

    def call_later(self, delay, callback, *args):
        self._seq += 1
        handle = FakeHandle(self.now + delay, self._seq, callback, args)
        self._handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: (h.when, h.seq))
            self._handles.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback(*handle.args)
        self.now = target


# ---------------------------------------------------------------------------
# Fake connection
# ---------------------------------------------------------------------------

class FakeConnection:
    """Records every action; ``emit`` plays the server side."""

    def __init__(self, position=Vec3(10.0, 64.0, -5.0)):
        self.handlers = defaultdict(list)
        self.position = position
        self.yaw = 0.0
        self.pitch = 0.0
        self.entities = []
        self.chats = []
        self.goals = []
        self.controls = {}
        self.looks = []
        self.attacks = []
        self.swings = 0
        self.quit_reason = None
        self.closed = False

    # -- server side -----------------------------------------------

    def emit(self, event, *args):
        for handler in list(self.handlers[event]):
            handler(*args)

    # -- Connection interface --------------------------------------

    def on(self, event, handler):
        self.handlers[event].append(handler)

    def chat(self, message):
        self.chats.append(message)

    def attack(self, entity):
        self.attacks.append(entity)

    def swing_arm(self, hand="right"):
        self.swings += 1

    def set_control_state(self, control, state):
        self.controls[control] = state

    def look(self, yaw, pitch, force=True):
        self.looks.append((yaw, pitch, force))
        self.yaw = yaw
        self.pitch = pitch

    def nearest_entity(self, predicate):
        matches = [e for e in self.entities if predicate(e)]
        if not matches:
            return None
        return min(matches, key=lambda e: math.dist(e.position, self.position))

    def set_goal_block(self, x, y, z):
        self.goals.append(("block", x, y, z))

    def set_goal_xz(self, x, z):
        self.goals.append(("xz", x, z))

    def close(self):
        self.closed = True
        self.handlers.clear()

    def quit(self, reason=""):
        self.quit_reason = reason


class Connector:
    """connect_fn for the controller; keeps every connection it hands out."""

    def __init__(self):
        self.connections = []
        self.fail_with = None

    def __call__(self, settings):
        if self.fail_with is not None:
            raise self.fail_with
        conn = FakeConnection()
        self.connections.append(conn)
        return conn

    @property
    def last(self):
        return self.connections[-1]


def entity(eid, etype, x=0.0, y=64.0, z=0.0, name=None):
    return Entity(id=eid, type=etype, name=name, position=Vec3(x, y, z))


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

BASE_SETTINGS = {
    "account": {"username": "afk_bot", "password": "", "auth": "offline"},
    "server": {"host": "localhost", "port": 25565, "version": "1.20.1"},
    "utils": {
        "auto-auth": {"enabled": False, "password": "hunter2"},
        "chat-messages": {
            "enabled": False,
            "repeat": False,
            "repeat-delay": 60,
            "messages": ["hello"],
        },
        "chat-log": False,
        "anti-afk": {
            "enabled": False,
            "sneak": False,
            "jump": False,
            "hit": {"enabled": False, "delay": 1000, "attack-mobs": False},
            "rotate": False,
            "circle-walk": {"enabled": False, "radius": 2},
        },
        "auto-reconnect": False,
        "auto-reconnect-delay": 5000,
    },
    "position": {"enabled": False, "x": 0, "y": 0, "z": 0},
}


def raw_settings(**sections):
    """Deep copy of BASE_SETTINGS with *sections* merged in one level deep."""
    data = copy.deepcopy(BASE_SETTINGS)
    for key, value in sections.items():
        key = key.replace("_", "-")
        if isinstance(value, dict) and isinstance(data.get(key), dict):
            data[key].update(value)
        else:
            data[key] = value
    return data


def make_settings(**sections):
    return parse_settings(raw_settings(**sections))


@pytest.fixture
def fake_loop():
    return FakeLoop()


@pytest.fixture
def connector():
    return Connector()
