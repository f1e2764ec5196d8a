"""Kiosk playback client: orchestrator + mpv + HTTP client.

Signals: SIGUSR1 skips the current video; SIGINT/SIGTERM shut down.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import httpx
import structlog

from tubekiosk.application.playback.orchestrator import (
    PlaybackOrchestrator,
    PlaybackSettings,
)
from tubekiosk.domain.entities.playback import Shutdown, SkipRequested
from tubekiosk.infrastructure.config import AppConfig, PlayerConfig, load_config
from tubekiosk.infrastructure.logging.setup import configure_logging
from tubekiosk.infrastructure.playback.http_client import HttpNextItemClient
from tubekiosk.infrastructure.playback.mpv_player import MpvPlayerFactory
from tubekiosk.infrastructure.playback.scheduler import AsyncioScheduler
from tubekiosk.infrastructure.playback.status import StatusBoard

log = structlog.get_logger(__name__)


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tubekiosk-player")
    parser.add_argument("--config", default=None, help="Path to YAML config file.")
    parser.add_argument("--dotenv", default=None, help="Path to .env file.")
    parser.add_argument(
        "--server-url", default=None, help="Base URL of the selection server."
    )
    parser.add_argument("--mpv-path", default=None, help="mpv executable.")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )
    return parser.parse_args(argv)


def playback_settings(config: PlayerConfig) -> PlaybackSettings:
    return PlaybackSettings(
        preload_lead_seconds=config.preload_lead_seconds,
        max_item_seconds=config.max_item_seconds,
        retry_seconds=config.retry_seconds,
        duplicate_retry_seconds=config.duplicate_retry_seconds,
        duration_poll_seconds=config.duration_poll_seconds,
        prefetch_debounce_seconds=config.prefetch_debounce_seconds,
        short_item_delay_seconds=config.short_item_delay_seconds,
        min_prefetch_delay_seconds=config.min_prefetch_delay_seconds,
        schedule_error_retry_seconds=config.schedule_error_retry_seconds,
    )


async def run_player(config: AppConfig) -> None:
    player_cfg = config.player

    async with httpx.AsyncClient(
        base_url=player_cfg.server_url,
        timeout=httpx.Timeout(player_cfg.request_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
    ) as http_client:
        player_factory = MpvPlayerFactory(player_cfg)
        orchestrator = PlaybackOrchestrator(
            client=HttpNextItemClient(http_client=http_client),
            player_factory=player_factory,
            scheduler=AsyncioScheduler(),
            status=StatusBoard(overlay=player_factory),
            settings=playback_settings(player_cfg),
        )

        loop = asyncio.get_running_loop()
        handled = (signal.SIGUSR1, signal.SIGINT, signal.SIGTERM)
        loop.add_signal_handler(signal.SIGUSR1, orchestrator.post, SkipRequested())
        loop.add_signal_handler(signal.SIGINT, orchestrator.post, Shutdown())
        loop.add_signal_handler(signal.SIGTERM, orchestrator.post, Shutdown())

        log.info("player_starting", server_url=player_cfg.server_url)
        try:
            await orchestrator.run()
        finally:
            for sig in handled:
                loop.remove_signal_handler(sig)
        log.info("player_stopped")


def start(argv: Iterable[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    cli_overrides: dict[str, Any] = {}
    if args.server_url:
        cli_overrides["server_url"] = args.server_url
    if args.mpv_path:
        cli_overrides["mpv_path"] = args.mpv_path
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides,
    )
    configure_logging(config)

    asyncio.run(run_player(config))


if __name__ == "__main__":
    raise SystemExit(start())
