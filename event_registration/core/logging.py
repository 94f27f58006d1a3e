"""Centralized logging configuration (loguru)."""

import sys
from typing import Callable

from fastapi import Request
from loguru import logger

from event_registration.core.config import Settings

log_format = " | ".join(
    (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green>",
        "<level>{level:<8}</level>",
        "<cyan>{name}:{function}:{line}</cyan>",
        "{message}",
    )
)


def setup_logging(settings: Settings) -> None:
    logger.remove()  # drop loguru's default stderr sink
    logger.add(
        sys.stdout,
        level=settings.log_level,
        format=log_format,
        serialize=settings.log_json,
        backtrace=False,
        diagnose=False,
    )


def log_operation(operation: str) -> Callable[[Request], None]:
    """Build a route dependency that logs a business operation before it runs."""

    def _log(request: Request) -> None:
        logger.bind(operation=operation).info(
            "BUSINESS OPERATION: {} event_id={} ip={} user_agent={}",
            operation,
            request.path_params.get("event_id"),
            request.client.host if request.client else None,
            request.headers.get("user-agent"),
        )

    return _log
