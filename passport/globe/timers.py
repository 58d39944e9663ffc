"""
Timer slots on the asyncio event loop.

A TaskSlot holds at most one live task. reschedule() cancels whatever the
slot holds before scheduling the replacement, so periodic callbacks never
leak and a debounce timer is simply rescheduled on every trigger.
"""

import asyncio
import math
from typing import Awaitable, Callable, Optional, Union

from sdk.logging import getLogger

TickResult = Union[bool, None, Awaitable[Union[bool, None]]]


class TaskSlot:

    def __init__(self, name: str):
        self.name = name
        self.log = getLogger()
        self._task: Optional[asyncio.Task] = None
        self.generation = 0

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task

    def reschedule(self, coroFactory: Callable[[], Awaitable[None]]) -> asyncio.Task:
        """Cancel the current task (if any) and schedule coroFactory() in its place."""
        self.cancel()
        self.generation += 1
        self._task = asyncio.get_running_loop().create_task(coroFactory(), name=f"{self.name}-{self.generation}")
        self._task.add_done_callback(self._onDone)
        return self._task

    def cancel(self) -> bool:
        """Cancel the held task. Returns True if a live task was cancelled."""
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        if task is asyncio.current_task():
            # A task stopping its own slot just ends after returning
            return False
        task.cancel()
        return True

    async def drain(self):
        """Cancel and wait for the held task to finish unwinding."""
        task = self._task
        self.cancel()
        if task is not None and task is not asyncio.current_task():
            try:
                await task
            except asyncio.CancelledError:
                pass

    def _onDone(self, task: asyncio.Task):
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.log.error(f"Timer task failed: {exc!r}", slot=self.name, errorClass=type(exc).__name__)


def periodic(periodS: float, tick: Callable[[], TickResult]) -> Callable[[], Awaitable[None]]:
    """
    Coroutine factory running tick on a fixed periodS schedule until it returns False.

    Deadlines advance from the loop clock, not from the end of the previous
    tick, so a slow tick does not stretch the period. Slots a tick overran are
    skipped rather than replayed; ticks never overlap.
    """
    async def run():
        loop = asyncio.get_running_loop()
        deadline = loop.time()
        while True:
            deadline += periodS
            now = loop.time()
            if deadline < now:
                deadline += math.ceil((now - deadline) / periodS) * periodS
            await asyncio.sleep(max(0.0, deadline - now))
            result = tick()
            if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
                result = await result
            if result is False:
                return
    return run


def oneShot(delayS: float, callback: Callable[[], None]) -> Callable[[], Awaitable[None]]:
    """Coroutine factory calling callback once after delayS seconds."""
    async def run():
        await asyncio.sleep(delayS)
        callback()
    return run
