"""
bot/network/connection.py – the connection handle the controller drives

The controller never talks to the protocol library directly; it only sees
this interface.  ``bot/network/mineflayer_client.py`` implements it on top
of mineflayer, the tests implement it with an in-memory fake.
"""

from __future__ import annotations

from typing import Any, Callable, NamedTuple, Optional, Protocol

# Events a connection emits, with their handler arguments:
#   spawn()                 – bot entered the world
#   chat(username, message) – a player chat line
#   goal_reached()          – pathfinder arrived at the current goal
#   death()                 – bot died (and respawns)
#   end(reason)             – connection closed
#   kicked(reason, logged_in)
#   error(exc)
EVENTS = ("spawn", "chat", "goal_reached", "death", "end", "kicked", "error")


class Vec3(NamedTuple):
    x: float
    y: float
    z: float

    def __str__(self) -> str:
        return f"({self.x:.1f}, {self.y:.1f}, {self.z:.1f})"


class Entity(NamedTuple):
    id: int
    type: str
    name: Optional[str]
    position: Vec3


EntityFilter = Callable[[Entity], bool]


class Connection(Protocol):
    """A live session with the server.  All actions are fire-and-forget."""

    def on(self, event: str, handler: Callable[..., None]) -> None: ...

    @property
    def position(self) -> Vec3: ...

    @property
    def yaw(self) -> float: ...

    @property
    def pitch(self) -> float: ...

    def chat(self, message: str) -> None: ...

    def attack(self, entity: Entity) -> None: ...

    def swing_arm(self, hand: str = "right") -> None: ...

    def set_control_state(self, control: str, state: bool) -> None: ...

    def look(self, yaw: float, pitch: float, force: bool = True) -> None: ...

    def nearest_entity(self, predicate: EntityFilter) -> Optional[Entity]: ...

    def set_goal_block(self, x: float, y: float, z: float) -> None: ...

    def set_goal_xz(self, x: float, z: float) -> None: ...

    def close(self) -> None:
        """Release event listeners without disconnecting."""

    def quit(self, reason: str = "") -> None: ...


ConnectFn = Callable[[Any], Connection]
