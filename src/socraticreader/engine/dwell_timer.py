"""Fixed-cadence dwell accounting for the most-engaged visible unit."""

from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from socraticreader.engine.stat_store import StatStore
from socraticreader.engine.stuck_detector import is_stuck


class DwellTimer:
    """Credits one logical second per tick to the primary visible unit.

    The primary unit is the active unit with the highest visibility ratio.
    Ties go to the unit that entered the viewport first. Secondary units that
    are merely scrolled past accrue nothing.
    """

    def __init__(self, store: StatStore, interval: float = 1.0):
        self.store = store
        self.interval = interval
        self.ticks = 0
        self._task: Optional[asyncio.Task] = None

    def select_primary(self) -> Optional[str]:
        primary_id: Optional[str] = None
        max_ratio = 0.0
        for unit_id, ratio in self.store.active_ratios():
            if ratio > max_ratio:
                max_ratio = ratio
                primary_id = unit_id
        return primary_id

    def tick(self) -> Optional[str]:
        """Advance one logical second. Returns the id that accrued dwell time, if any."""
        self.ticks += 1
        primary_id = self.select_primary()
        if primary_id is None:
            return None

        current = self.store.get(primary_id)
        if current is None or current.is_stuck:
            return None  # frozen

        updated = self.store.add_dwell(primary_id)
        if is_stuck(updated):
            self.store.mark_stuck(primary_id)
            logger.info(
                "Unit {} stuck after {}s (expected {:.1f}s)",
                primary_id, updated.dwell_seconds, updated.expected_dwell_seconds,
            )

        self.store.notify()
        return primary_id

    # --- Real-time cadence ---

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run())
        return self._task

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            # Schedule against deadlines so slow ticks don't accumulate drift
            deadline += self.interval
            now = loop.time()
            if deadline <= now:
                # Stalled loop: missed ticks are dropped, never replayed
                logger.debug("Dwell timer fell behind by {:.2f}s", now - deadline)
                deadline = now + self.interval
            await asyncio.sleep(deadline - now)
            self.tick()
