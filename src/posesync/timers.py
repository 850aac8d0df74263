"""
setInterval-style timer for the asyncio loop.
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class IntervalTimer:
    """
    Calls `callback()` every `interval` seconds on deadlines start + k * interval.
    The callback must not block; an exception from it is logged and the timer
    keeps running.
    """

    def __init__(self, interval, callback, name="timer"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = float(interval)
        self.callback = callback
        self.name = name
        self.fired = 0
        self._task = None

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    def cancel(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.interval
        while True:
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            self.fired += 1
            try:
                self.callback()
            except Exception:
                logger.exception("[%s] timer callback failed", self.name)
            deadline += self.interval
