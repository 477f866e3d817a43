"""
Background maintenance worker: expires posts and rooms even without traffic.
"""
import asyncio
import logging
from typing import Optional

from fadeboard.lifecycle import LifecycleManager

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """Runs a maintenance pass at startup and then on a fixed interval."""

    def __init__(self, manager: LifecycleManager, interval: float = 60):
        self.manager = manager
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    async def run_once(self) -> None:
        """One pass; errors are logged so the next pass still runs."""
        try:
            await self.manager.run_maintenance_pass()
        except Exception:
            logger.exception("Maintenance pass failed")

    async def run_forever(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        """Start the background task."""
        if not self._task:
            self._task = asyncio.create_task(self.run_forever())

    async def stop(self) -> None:
        """Cancel the background task and wait for it to finish."""
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
