"""
run.py – entry point

Usage:
    python run.py                                  # reads settings.json
    python run.py --settings my-server.json
    python run.py --host play.example.net --port 25566

    Stop the bot: press Ctrl+C in the terminal.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys

import config
from bot.controller import BotController
from bot.settings import ConfigurationError, Settings, load_settings, validate_settings

log = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────
#  Main
# ─────────────────────────────────────────────────────────────────────

async def main(settings: Settings) -> None:
    # Imported here: loading it starts the Node bridge
    from bot.network.mineflayer_client import open_mineflayer_connection

    loop = asyncio.get_running_loop()
    controller = BotController(settings, open_mineflayer_connection(loop), loop)
    controller.connect()
    try:
        await asyncio.Future()  # run forever
    finally:
        controller.stop()


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    server = settings.server
    if args.host:
        server = dataclasses.replace(server, host=args.host)
    if args.port:
        server = dataclasses.replace(server, port=args.port)
    return dataclasses.replace(settings, server=server)


def cli(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Minecraft AFK bot")
    parser.add_argument(
        "--settings",
        default=config.SETTINGS_FILE,
        help="Path to the JSON settings file",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Server address (overrides server.host)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Server port (overrides server.port)",
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format=config.LOG_FORMAT)

    try:
        settings = _apply_overrides(load_settings(args.settings, validate=False), args)
        validate_settings(settings)
    except ConfigurationError as exc:
        log.error(f"Failed to create bot: {exc}")
        return 1

    try:
        asyncio.run(main(settings))
    except KeyboardInterrupt:
        log.info("[bot] stopped")
    return 0


if __name__ == "__main__":
    sys.exit(cli())
