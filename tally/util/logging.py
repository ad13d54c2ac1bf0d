"""Standard-library logging for third-party loggers.

Tally's own code logs through logfire. This only decides what the driver,
pool and migration loggers print when the scripts run.
"""

import logging
import sys

from tally.config import Settings

# Statement echo is the engine's job (``echo=settings.debug``)
NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "asyncpg")


def log_level(settings: Settings) -> int:
    if settings.debug:
        return logging.DEBUG
    if settings.environment == "test":
        return logging.WARNING
    return logging.INFO


def setup_logging(settings: Settings) -> None:
    """Route root logging to stdout at the environment's level."""
    level = log_level(settings)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        stream=sys.stdout,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    # alembic reports each applied revision at INFO
    logging.getLogger("alembic").setLevel(level)
