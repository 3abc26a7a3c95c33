from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for this repo.

    Notes:
    - Plain stdlib logging; uvicorn already configures handlers.
    - Ability evaluations are logged at DEBUG (`APP_LOG_LEVEL=DEBUG`).
    """

    normalized = level.upper()
    logging.getLogger("resource_abilities").setLevel(normalized)
    # Ensure child loggers under resource_abilities.* inherit this level.
    logging.getLogger("resource_abilities").propagate = True
