"""Background task that periodically syncs every active linked workspace."""

import asyncio
from typing import Optional

from common.logging_config import get_logger
from claimsync.services.sync_initiator import SyncInitiator

logger = get_logger(__name__)


class AutoSyncScheduler:
    """
    In-process stand-in for the external cron trigger of sync_all_workspaces.
    """

    def __init__(self, initiator: SyncInitiator, interval_seconds: int):
        """
        Initialize scheduler.

        Args:
            initiator: Service running the bulk pass
            interval_seconds: Time between passes; 0 or less disables the task
        """
        self.initiator = initiator
        self.interval_seconds = interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.interval_seconds > 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background sync task."""
        if not self.enabled:
            logger.info("Automatic workspace sync disabled")
            return

        if self._running:
            logger.warning("Automatic workspace sync already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started automatic workspace sync (interval: {self.interval_seconds}s)")

    async def stop(self) -> None:
        """Stop the background sync task."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Stopped automatic workspace sync")

    async def _run(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_seconds)

                if not self._running:
                    break

                await self.run_once()

            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in automatic workspace sync: {e}", exc_info=True)

    async def run_once(self) -> dict:
        """Execute one bulk pass."""
        summary = await self.initiator.sync_all_workspaces()
        logger.info(f"Automatic sync pass complete: {summary['synced_workspaces']} workspaces")
        return summary
