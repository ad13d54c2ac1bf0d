"""Fixed-interval scheduler for out-of-band jobs such as the consistency sweep."""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import logfire


class PeriodicTask:
    """Run an async job every ``interval_seconds`` until stopped.

    A failing run is logged and the schedule continues; runs never overlap.
    """

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        job: Callable[[], Awaitable[Any]],
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.name = name
        self.interval_seconds = interval_seconds
        self._job = job
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None
        self.runs = 0
        self.failures = 0

    async def run_once(self) -> Any:
        """Run the job once, logging instead of raising on failure."""
        self.runs += 1
        with logfire.span("periodic_task.run", task=self.name, run=self.runs):
            try:
                return await self._job()
            except Exception:
                self.failures += 1
                logfire.exception("Periodic task run failed", task=self.name)
                return None

    async def run_forever(self) -> None:
        """Run immediately, then every interval until ``stop()`` is called."""
        logfire.info(
            "Periodic task started",
            task=self.name,
            interval_seconds=self.interval_seconds,
        )
        while not self._stopped.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stopped.wait(), self.interval_seconds)
            except asyncio.TimeoutError:
                continue
        logfire.info("Periodic task stopped", task=self.name, runs=self.runs)

    def start(self) -> "asyncio.Task[None]":
        """Schedule ``run_forever`` on the running loop."""
        if self._task is None or self._task.done():
            self._stopped.clear()
            self._task = asyncio.create_task(self.run_forever(), name=self.name)
        return self._task

    async def stop(self) -> None:
        """Ask the loop to finish and wait for the current run to end."""
        self._stopped.set()
        if self._task is not None:
            await self._task
            self._task = None
