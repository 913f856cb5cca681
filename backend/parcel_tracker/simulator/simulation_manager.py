"""
Simulation manager: background task that runs the scheduled event executor.
- Started from the FastAPI lifespan when EXECUTOR_ENABLED.
- Each tick opens its own session and runs process_due_events in a worker thread.
"""

import asyncio
import logging

from parcel_tracker.config import settings
from parcel_tracker.database import SessionLocal
from parcel_tracker.simulator.event_executor import process_due_events

logger = logging.getLogger(__name__)


class SimulationManager:
    """Lifecycle of the executor loop"""

    def __init__(self, interval_seconds: float | None = None, batch_size: int | None = None):
        self._interval = interval_seconds or settings.EXECUTOR_INTERVAL_SECONDS
        self._batch_size = batch_size or settings.EXECUTOR_BATCH_SIZE
        self._running: bool = False
        self._task: asyncio.Task | None = None
        self.last_result: dict | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    def run_once(self) -> dict:
        db = SessionLocal()
        try:
            self.last_result = process_due_events(db, limit=self._batch_size)
            return self.last_result
        finally:
            db.close()

    async def _executor_loop(self):
        logger.info(f"Executor loop started (every {self._interval}s, batch {self._batch_size})")
        while self._running:
            try:
                loop = asyncio.get_running_loop()
                await loop.run_in_executor(None, self.run_once)
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Executor loop error: {e}")
                await asyncio.sleep(5)

    async def start(self):
        if self._running:
            logger.warning("Executor loop is already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._executor_loop())

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
        self._task = None
        logger.info("Executor loop stopped")

    def get_status(self) -> dict:
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "batch_size": self._batch_size,
            "last_result": self.last_result,
        }


simulation_manager = SimulationManager()
