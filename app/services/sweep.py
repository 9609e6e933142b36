"""
Guarantee expiry sweep - the only background task the service owns.

Runs expire_guarantees() every `guarantee_sweep_interval_seconds` in a
worker thread so the blocking DB calls stay off the event loop.
"""

import asyncio
import logging
from typing import Optional

from app.core.exceptions import StorageUnavailable
from app.services.placement_safety_service import SweepResult, expire_guarantees

logger = logging.getLogger(__name__)


class GuaranteeSweeper:
    def __init__(self, interval_seconds: int):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self.last_result: Optional[SweepResult] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> SweepResult:
        self.last_result = await asyncio.to_thread(expire_guarantees)
        return self.last_result

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except StorageUnavailable as e:
                # Store is down; the next tick tries again
                logger.error("Guarantee sweep skipped: %s", e.message)
            except Exception:
                logger.exception("Guarantee sweep failed; retrying in %ss", self.interval_seconds)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="guarantee-sweep")
        logger.info("Guarantee sweep started (every %ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        except Exception:
            logger.exception("Guarantee sweep task ended with an error")
        self._task = None
        logger.info("Guarantee sweep stopped")
