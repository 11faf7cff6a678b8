"""
logging_config.py — Loguru setup for the visitrank API and reconcile CLI

One Loguru sink per process, chosen by the caller: the API logs to stdout,
visitrank-reconcile logs to stderr so its JSON report on stdout stays
parseable. Stdlib logging is intercepted because the memo store logs cache
hits, misses and evictions through logging.getLogger("visitrank.cache").

Business Rules:
- Production means APP_URL is https and not localhost: JSON lines there
- Anywhere else: colorized lines that show the bound extras (request_id,
  pairs, invalid_dates ...) next to the message
- LOG_LEVEL sets the minimum level (default INFO)

Called by: visitrank/main.py (lifespan), cli.py
Depends on: LOG_LEVEL, APP_URL environment variables
"""

import logging
import os
import sys

from loguru import logger


def _is_production(app_url: str) -> bool:
    return app_url.startswith("https://") and "localhost" not in app_url


def setup_logging(sink=None) -> None:
    """Configure Loguru and intercept stdlib logging.

    Call once at app startup, before anything else logs.
    """
    logger.remove()
    sink = sink or sys.stdout

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    is_production = _is_production(os.getenv("APP_URL", ""))

    if is_production:
        # JSON lines; the container runtime collects stdout
        logger.add(
            sink,
            level=log_level,
            format="{message}",
            serialize=True,
        )
    else:
        logger.add(
            sink,
            level=log_level,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{extra} {message}"
            ),
            colorize=True,
        )

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging configured", level=log_level, production=is_production)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip frames from stdlib logging internals
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )
