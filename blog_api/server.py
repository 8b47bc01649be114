"""
Process entry point: runs the API under uvicorn with a bounded graceful
shutdown.
"""

from __future__ import annotations

import argparse
import logging
import os
from threading import Timer
from typing import Optional

import uvicorn
from pydantic import ValidationError as SettingsValidationError
from pydantic_settings import SettingsError

from blog_api.app import create_app
from blog_api.config import get_settings
from blog_api.errors import ConfigurationError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(name)s %(levelname)s %(asctime)s %(message)s"
LOG_DATEFMT = "%m/%d/%Y %I:%M:%S %p"


def _force_exit(grace_seconds: float) -> None:
    logger.error("Shutdown did not finish within %.1fs, forcing exit", grace_seconds)
    os._exit(1)


class GracefulServer(uvicorn.Server):
    """
    uvicorn server that force-exits if shutdown stalls.

    On the first shutdown signal uvicorn stops accepting connections and
    waits, without a deadline of its own, for in-flight requests and the
    lifespan cleanup. The timer is the only bound: it kills the process
    once the grace period has passed.
    """

    def __init__(self, config: uvicorn.Config, grace_seconds: float):
        super().__init__(config)
        self.grace_seconds = grace_seconds
        self.force_exit_timer: Optional[Timer] = None

    def handle_exit(self, sig: int, frame) -> None:
        if self.force_exit_timer is None:
            logger.info("Received signal %s, shutting down gracefully", sig)
            self.force_exit_timer = Timer(
                self.grace_seconds, _force_exit, args=(self.grace_seconds,)
            )
            self.force_exit_timer.daemon = True
            self.force_exit_timer.start()
        super().handle_exit(sig, frame)

    def cancel_force_exit(self) -> None:
        if self.force_exit_timer is not None:
            self.force_exit_timer.cancel()


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, datefmt=LOG_DATEFMT)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Postboard API server")
    parser.add_argument("--host", type=str, default=None, help="Interface to bind (default: HOST)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: PORT)")
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (DEBUG, INFO, WARNING, ...; default: LOG_LEVEL)",
    )
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except (SettingsError, SettingsValidationError) as exc:
        _configure_logging(args.log_level or "INFO")
        logger.error("Startup failed: invalid configuration: %s", exc)
        return 1

    log_level = args.log_level or settings.log_level
    host = args.host or settings.host
    port = args.port if args.port is not None else settings.port
    _configure_logging(log_level)

    try:
        app = create_app(settings)
    except ConfigurationError as exc:
        logger.error("Startup failed: %s", exc)
        return 1

    # Shutdown is bounded by the force-exit timer alone.
    config = uvicorn.Config(app, host=host, port=port, log_level=log_level.lower())
    server = GracefulServer(config, grace_seconds=settings.shutdown_grace_seconds)
    logger.info("Postboard API listening on %s:%d (%s)", host, port, settings.environment)
    try:
        server.run()
    finally:
        server.cancel_force_exit()
    # uvicorn leaves started=False when it could not bind the socket
    return 0 if server.started else 1


if __name__ == "__main__":
    raise SystemExit(main())
