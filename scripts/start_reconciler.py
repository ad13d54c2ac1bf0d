#!/usr/bin/env python3
"""Run the consistency sweep on a fixed interval.

Usage:
    python scripts/start_reconciler.py          # every CONSISTENCY__INTERVAL_SECONDS
    python scripts/start_reconciler.py --once   # single sweep, exit 1 if issues remain
"""

import argparse
import asyncio
import signal
import sys

import logfire
from dishka import AsyncContainer

from tally.config import Settings
from tally.domain.service import ConsistencyReport, ConsistencyService, summarize
from tally.util.di.container import create_container
from tally.util.logging import setup_logging
from tally.util.observability import configure_logfire
from tally.util.periodic import PeriodicTask


async def sweep(container: AsyncContainer) -> ConsistencyReport:
    """One sweep with request-scoped services."""
    async with container() as request_container:
        service = await request_container.get(ConsistencyService)
        report = await service.run_sweep()
    logfire.info("Sweep summary", **summarize(report))
    return report


async def run(settings: Settings, once: bool) -> int:
    container = create_container()
    try:
        if once:
            report = await sweep(container)
            unrepaired = [issue for issue in report.issues if not issue.repaired]
            return 1 if unrepaired else 0

        task = PeriodicTask(
            "consistency_sweep",
            settings.consistency.interval_seconds,
            lambda: sweep(container),
        )
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda: asyncio.ensure_future(task.stop()))

        await task.start()
        return 0
    finally:
        await container.close()


def main() -> int:
    """Start the reconciler and log any startup errors to Logfire."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--once", action="store_true", help="run a single sweep")
    args = parser.parse_args()

    settings = Settings()
    setup_logging(settings)
    configure_logfire(settings)

    try:
        logfire.info(
            "Starting consistency reconciler",
            interval_seconds=settings.consistency.interval_seconds,
            once=args.once,
        )
        return asyncio.run(run(settings, args.once))

    except Exception as e:
        logfire.error(
            "Reconciler failed",
            error=str(e),
            error_type=type(e).__name__,
            _exc_info=sys.exc_info(),
        )
        # Re-raise so the container fails properly
        raise


if __name__ == "__main__":
    sys.exit(main())
