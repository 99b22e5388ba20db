# ─────────────────────────────────────────────
#  config.py  –  central configuration
# ─────────────────────────────────────────────
#
# Fixed timings and constants.  Per-account options (credentials, server,
# feature toggles) live in the JSON settings file, see settings.example.json.

import math

# ── Settings file ─────────────────────────────
SETTINGS_FILE = "settings.json"   # overridable with --settings

# ── Server defaults ──────────────────────────
DEFAULT_PORT = 25565
DEFAULT_AUTH = "offline"          # "offline" | "microsoft"

# ── Logging ──────────────────────────────────
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = "INFO"

# ── Auto-auth ────────────────────────────────
# Seconds to wait after spawn before sending /register and /login
AUTH_DELAY = 0.5

# ── Anti-afk ─────────────────────────────────
# Look-rotation tick (seconds) and yaw step per tick.
# mineflayer angles are radians, so one degree is converted here.
ROTATE_INTERVAL = 0.1
ROTATE_STEP = math.radians(1.0)

# Seconds between circle-walk goals
CIRCLE_WALK_INTERVAL = 1.0

# Entity types the hit behavior never attacks (everything else is a mob)
NON_ATTACKABLE_TYPES = frozenset({"object", "player", "global", "orb", "other"})

# ── Kick handling ────────────────────────────
UNKNOWN_KICK_REASON = "unknown reason"
