"""
bot/settings.py – immutable account / server / feature settings

Settings are read once from a JSON file and handed to the controller as a
frozen value.  A reconnect reuses the same object; nothing here is global.

File layout (hyphenated keys, durations as in the classic AFK-bot file)::

    {
      "account":  {"username": "...", "password": "", "auth": "offline"},
      "server":   {"host": "...", "port": 25565, "version": "1.20.1"},
      "utils":    {"auto-auth": {...}, "chat-messages": {...},
                   "chat-log": true, "anti-afk": {...},
                   "auto-reconnect": true, "auto-reconnect-delay": 5000},
      "position": {"enabled": false, "x": 0, "y": 0, "z": 0}
    }

``hit.delay`` and ``auto-reconnect-delay`` are milliseconds in the file,
``repeat-delay`` is seconds.  Everything is converted to seconds on load.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import config

log = logging.getLogger(__name__)

REQUIRED_SECTIONS = ("account", "server", "utils", "position")

# Keys accepted from older settings files
_SECTION_ALIASES = {"account": "bot-account"}


class ConfigurationError(Exception):
    """Raised when the settings file is missing, malformed or incomplete."""


# ── Value types ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class AccountSettings:
    username: str
    password: str = ""
    auth: str = config.DEFAULT_AUTH


@dataclass(frozen=True)
class ServerSettings:
    host: str
    port: int = config.DEFAULT_PORT
    version: Optional[str] = None     # None → let the client auto-detect


@dataclass(frozen=True)
class AutoAuthSettings:
    enabled: bool = False
    password: str = ""


@dataclass(frozen=True)
class ChatMessagesSettings:
    enabled: bool = False
    repeat: bool = False
    repeat_delay: float = 60.0        # seconds
    messages: tuple[str, ...] = ()


@dataclass(frozen=True)
class HitSettings:
    enabled: bool = False
    delay: float = 1.0                # seconds
    attack_mobs: bool = False


@dataclass(frozen=True)
class CircleWalkSettings:
    enabled: bool = False
    radius: float = 2.0


@dataclass(frozen=True)
class AntiAfkSettings:
    enabled: bool = False
    sneak: bool = False
    jump: bool = False
    hit: HitSettings = field(default_factory=HitSettings)
    rotate: bool = False
    circle_walk: CircleWalkSettings = field(default_factory=CircleWalkSettings)


@dataclass(frozen=True)
class UtilsSettings:
    auto_auth: AutoAuthSettings = field(default_factory=AutoAuthSettings)
    chat_messages: ChatMessagesSettings = field(default_factory=ChatMessagesSettings)
    chat_log: bool = False
    anti_afk: AntiAfkSettings = field(default_factory=AntiAfkSettings)
    auto_reconnect: bool = False
    auto_reconnect_delay: float = 5.0  # seconds


@dataclass(frozen=True)
class PositionSettings:
    enabled: bool = False
    x: float = 0
    y: float = 0
    z: float = 0


@dataclass(frozen=True)
class Settings:
    account: AccountSettings
    server: ServerSettings
    utils: UtilsSettings = field(default_factory=UtilsSettings)
    position: PositionSettings = field(default_factory=PositionSettings)


# ── Field readers ────────────────────────────────────────────────────

def _section(data: Mapping[str, Any], key: str, where: str) -> Mapping[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"'{where}{key}' must be an object")
    return value


def _bool(data: Mapping[str, Any], key: str, where: str, default: bool = False) -> bool:
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"'{where}{key}' must be true or false")
    return value


def _number(
    data: Mapping[str, Any], key: str, where: str, default: float, positive: bool = False,
) -> float:
    value = data.get(key, default)
    # bool is an int subclass, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"'{where}{key}' must be a number")
    if value < 0:
        raise ConfigurationError(f"'{where}{key}' must not be negative")
    # Timer intervals: zero would re-arm on every loop pass
    if positive and value == 0:
        raise ConfigurationError(f"'{where}{key}' must be greater than zero")
    return value


def _str(data: Mapping[str, Any], key: str, where: str, default: str = "") -> str:
    value = data.get(key, default)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ConfigurationError(f"'{where}{key}' must be a string")
    return value


# ── Section parsers ──────────────────────────────────────────────────

def _parse_account(raw: Mapping[str, Any]) -> AccountSettings:
    return AccountSettings(
        username=_str(raw, "username", "account."),
        password=_str(raw, "password", "account."),
        # "type" is the key used by older settings files
        auth=_str(raw, "auth", "account.", _str(raw, "type", "account.", config.DEFAULT_AUTH)),
    )


def _parse_server(raw: Mapping[str, Any]) -> ServerSettings:
    host = _str(raw, "host", "server.") or _str(raw, "ip", "server.")
    port = _number(raw, "port", "server.", config.DEFAULT_PORT)
    version = raw.get("version")
    if version is not None and not isinstance(version, str):
        raise ConfigurationError("'server.version' must be a string")
    return ServerSettings(host=host, port=int(port), version=version or None)


def _parse_anti_afk(raw: Mapping[str, Any]) -> AntiAfkSettings:
    where = "utils.anti-afk."
    hit = _section(raw, "hit", where)
    circle = _section(raw, "circle-walk", where)
    return AntiAfkSettings(
        enabled=_bool(raw, "enabled", where),
        sneak=_bool(raw, "sneak", where),
        jump=_bool(raw, "jump", where),
        hit=HitSettings(
            enabled=_bool(hit, "enabled", where + "hit."),
            delay=_number(hit, "delay", where + "hit.", 1000, positive=True) / 1000.0,
            attack_mobs=_bool(hit, "attack-mobs", where + "hit."),
        ),
        rotate=_bool(raw, "rotate", where),
        circle_walk=CircleWalkSettings(
            enabled=_bool(circle, "enabled", where + "circle-walk."),
            radius=_number(circle, "radius", where + "circle-walk.", 2),
        ),
    )


def _parse_utils(raw: Mapping[str, Any]) -> UtilsSettings:
    auth = _section(raw, "auto-auth", "utils.")
    chat = _section(raw, "chat-messages", "utils.")

    messages = chat.get("messages", [])
    if not isinstance(messages, list) or not all(isinstance(m, str) for m in messages):
        raise ConfigurationError("'utils.chat-messages.messages' must be a list of strings")

    return UtilsSettings(
        auto_auth=AutoAuthSettings(
            enabled=_bool(auth, "enabled", "utils.auto-auth."),
            password=_str(auth, "password", "utils.auto-auth."),
        ),
        chat_messages=ChatMessagesSettings(
            enabled=_bool(chat, "enabled", "utils.chat-messages."),
            repeat=_bool(chat, "repeat", "utils.chat-messages."),
            repeat_delay=_number(chat, "repeat-delay", "utils.chat-messages.", 60, positive=True),
            messages=tuple(messages),
        ),
        chat_log=_bool(raw, "chat-log", "utils."),
        anti_afk=_parse_anti_afk(_section(raw, "anti-afk", "utils.")),
        auto_reconnect=_bool(raw, "auto-reconnect", "utils."),
        auto_reconnect_delay=_number(raw, "auto-reconnect-delay", "utils.", 5000) / 1000.0,
    )


def _number_signed(raw: Mapping[str, Any], key: str) -> float:
    value = raw.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"'position.{key}' must be a number")
    return value


def _parse_position(raw: Mapping[str, Any]) -> PositionSettings:
    return PositionSettings(
        enabled=_bool(raw, "enabled", "position."),
        x=_number_signed(raw, "x"),
        y=_number_signed(raw, "y"),
        z=_number_signed(raw, "z"),
    )


# ── Public API ───────────────────────────────────────────────────────

def parse_settings(data: Mapping[str, Any]) -> Settings:
    """Build a :class:`Settings` from an already-decoded mapping."""
    if not isinstance(data, Mapping):
        raise ConfigurationError("settings root must be an object")

    sections: dict[str, Mapping[str, Any]] = {}
    for name in REQUIRED_SECTIONS:
        key = name if name in data else _SECTION_ALIASES.get(name, name)
        if key not in data:
            raise ConfigurationError(f"missing required section '{name}'")
        sections[name] = _section(data, key, "")

    return Settings(
        account=_parse_account(sections["account"]),
        server=_parse_server(sections["server"]),
        utils=_parse_utils(sections["utils"]),
        position=_parse_position(sections["position"]),
    )


def validate_settings(settings: Settings) -> None:
    """Raise :class:`ConfigurationError` unless username and host are set."""
    if not settings.account.username:
        raise ConfigurationError("missing 'account.username'")
    if not settings.server.host:
        raise ConfigurationError("missing 'server.host'")


def load_settings(path: str | Path, validate: bool = True) -> Settings:
    """Read, parse and (unless *validate* is false) validate the JSON
    settings file at *path*."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"settings file not found: {path}") from None
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"invalid JSON in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc

    settings = parse_settings(data)
    if validate:
        validate_settings(settings)
    log.debug(f"[settings:load] loaded {path} for {settings.account.username}")
    return settings
