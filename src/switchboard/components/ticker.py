"""
Ticker - periodic signal source.

Emits `tick(count)` at a fixed interval between `start` and `stop`. Ticks are
scheduled with APScheduler's asyncio scheduler, so they are delivered on the
application's event loop like every other event.
"""

import asyncio
import logging
from datetime import timezone
from typing import Any, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..core.component import Component

log = logging.getLogger(__name__)


class Ticker(Component, operations=["start", "stop"], events=["tick"]):
    """
    Args:
        config: interval in seconds, or a mapping with an `interval` key.
    """

    def __init__(self, config: Any = None):
        interval = config.get("interval") if isinstance(config, dict) else config
        self.interval = float(interval) if interval is not None else 1.0 / 60
        self._scheduler: Optional[AsyncIOScheduler] = None
        self._count = 0

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def count(self) -> int:
        return self._count

    def start(self) -> None:
        """Start ticking. Must be called from within the running event loop."""
        if self._scheduler is not None:
            return

        self._scheduler = AsyncIOScheduler(
            event_loop=asyncio.get_running_loop(),
            timezone=timezone.utc,
        )
        self._scheduler.add_job(
            self._tick,
            "interval",
            seconds=self.interval,
            coalesce=True,
            max_instances=1,
        )
        self._scheduler.start()
        log.debug(f"Ticker started ({self.interval}s)")

    def stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        log.debug(f"Ticker stopped after {self._count} tick(s)")

    async def _tick(self) -> None:
        self._count += 1
        self.emit("tick", self._count)


def components(core):
    return {"Ticker": Ticker}
