from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from tubekiosk.domain.errors import ConfigurationError
from tubekiosk.infrastructure.config import AppConfig, load_config
from tubekiosk.infrastructure.logging.setup import configure_logging
from tubekiosk.infrastructure.persistence.config_repository import (
    JsonSelectionConfigRepository,
)
from tubekiosk.infrastructure.persistence.json_store import JsonDocumentStore
from tubekiosk.interfaces.app import create_app

log = structlog.get_logger(__name__)

DEFAULT_PORT = 3000


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="tubekiosk")

    # Server options
    parser.add_argument("--host", default=None, help="Bind host.")
    parser.add_argument("--port", default=None, type=int, help="Bind port.")

    # Config wiring flags (no business logic)
    parser.add_argument("--config", default=None, help="Path to YAML config file.")
    parser.add_argument("--dotenv", default=None, help="Path to .env file.")
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory with config.json, played.json and channel_cache.json.",
    )
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


def resolve_port(config: AppConfig) -> int:
    """Configured port, else ``config.json -> port``, else 3000."""
    if config.port:
        return config.port
    repo = JsonSelectionConfigRepository(JsonDocumentStore(config.data_dir))
    try:
        document_port = asyncio.run(repo.configured_port())
    except ConfigurationError as e:
        log.warning("document_port_unavailable", error=str(e))
        document_port = None
    return document_port or DEFAULT_PORT


def start(argv: Iterable[str] | None = None) -> None:
    """
    Server entrypoint: load config once, then build the FastAPI app with it.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _parse_args(argv)

    cli_overrides: dict[str, Any] = {}
    if args.host:
        cli_overrides["host"] = args.host
    if args.port:
        cli_overrides["port"] = args.port
    if args.data_dir:
        cli_overrides["data_dir"] = args.data_dir
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    config = load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides,
    )

    log_config = configure_logging(config)
    port = resolve_port(config)
    log.info("server_starting", host=config.host, port=port)

    uvicorn.run(
        create_app(config),
        host=config.host,
        port=port,
        log_config=log_config,
    )


if __name__ == "__main__":
    raise SystemExit(start())
