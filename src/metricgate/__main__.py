"""Run the metricgate HTTP service.

Run with:
    python -m metricgate --port 3000

Settings not given on the command line are read from the environment
(see AppConfig.from_env).
"""

import argparse
import dataclasses
import logging
from collections.abc import Sequence

import uvicorn

from metricgate.adapters.frameworks.fastapi import create_app
from metricgate.adapters.logging import configure_logging
from metricgate.core.config import AppConfig

logger = logging.getLogger("metricgate")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metricgate",
        description="Deduplicating metrics ingestion service.",
    )
    parser.add_argument("--host", help="Interface to bind (env HOST)")
    parser.add_argument("--port", type=int, help="Port to listen on (env PORT)")
    parser.add_argument(
        "--database", help="SQLite database path (env DATABASE_PATH)"
    )
    return parser


def load_config(argv: Sequence[str] | None = None) -> AppConfig:
    """Merge command-line overrides into the environment configuration."""
    args = build_parser().parse_args(argv)
    config = AppConfig.from_env()
    server = config.server
    if args.host is not None:
        server = dataclasses.replace(server, host=args.host)
    if args.port is not None:
        server = dataclasses.replace(server, port=args.port)
    config = dataclasses.replace(config, server=server)
    if args.database is not None:
        config = dataclasses.replace(config, database_path=args.database)
    return config


def main(argv: Sequence[str] | None = None) -> None:
    config = load_config(argv)
    configure_logging(config.logging)
    logger.info(
        "Starting metricgate on %s:%s",
        config.server.host,
        config.server.port,
        extra={"environment": config.server.environment},
    )
    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
