"""Logfire setup for the engine and its scripts.

Application code logs through ``logfire`` directly; spans wrap each
transaction run and each consistency sweep, and the SQLAlchemy integration
adds one span per statement so replayed attempts can be told apart.
"""

import logfire
from sqlalchemy.ext.asyncio import AsyncEngine

from tally.config import ObservabilitySettings, Settings

SERVICE_NAME = "tally"
SERVICE_VERSION = "1.0.0"


def should_send(settings: ObservabilitySettings) -> bool:
    """An explicit flag wins; otherwise send only when a token is configured."""
    if settings.send_to_logfire is not None:
        return settings.send_to_logfire
    return bool(settings.logfire_token)


def configure_logfire(settings: Settings) -> None:
    """Configure logfire once per process, before the container is built."""
    send = should_send(settings.observability)
    logfire.configure(
        service_name=SERVICE_NAME,
        service_version=SERVICE_VERSION,
        environment=settings.environment,
        send_to_logfire=send,
        token=settings.observability.logfire_token,
        console=logfire.ConsoleOptions(
            colors="auto",
            span_style="show-parents",
            include_timestamps=True,
            verbose=settings.debug,
        ),
    )
    logfire.info(
        "Logfire configured",
        environment=settings.environment,
        send_to_logfire=send,
    )


def instrument_sqlalchemy(engine: AsyncEngine) -> None:
    """Trace statements on ``engine``, BEGIN, COMMIT and ROLLBACK included."""
    logfire.instrument_sqlalchemy(engine=engine.sync_engine, enable_commenter=True)
