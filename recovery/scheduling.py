"""
Deferred callbacks and timeout races on the running event loop.
"""

import asyncio
from typing import Optional, Callable, Awaitable, Any
from dataclasses import dataclass


@dataclass
class RaceResult:
    """Outcome of racing an operation against its deadline"""
    value: Any = None
    error: Optional[BaseException] = None
    timed_out: bool = False


def _drain(task: asyncio.Future):
    # Retrieve the loser's outcome so the loop does not report it as unhandled
    if not task.cancelled():
        task.exception()


async def race_with_timeout(operation: Callable[[], Awaitable[Any]], timeout_ms: float) -> RaceResult:
    """
    Run `operation` until it settles or `timeout_ms` elapses.

    The result is taken from the state at the deadline only. A losing
    operation is cancelled and anything it produces afterwards is discarded.
    """
    try:
        task = asyncio.ensure_future(operation())
    except Exception as e:
        return RaceResult(error=e)

    try:
        done, _ = await asyncio.wait({task}, timeout=max(timeout_ms, 0) / 1000)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task not in done:
        task.cancel()
        task.add_done_callback(_drain)
        return RaceResult(timed_out=True)

    if task.cancelled():
        return RaceResult(error=asyncio.CancelledError("operation cancelled"))
    if task.exception() is not None:
        return RaceResult(error=task.exception())
    return RaceResult(value=task.result())


class CancellationHandle:
    """Handle for a callback scheduled with schedule_after"""

    def __init__(self, delay_ms: float):
        self.delay_ms = delay_ms
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self.fired = False
        self.cancelled = False

    def cancel(self):
        """Cancel the pending timer; a callback already running is left to finish"""
        if self._timer is not None and not self.fired:
            self._timer.cancel()
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not self.fired and not self.cancelled

    @property
    def task(self) -> Optional[asyncio.Task]:
        return self._task


def schedule_after(
    delay_ms: float,
    callback: Callable[[], Awaitable[Any]],
    loop: Optional[asyncio.AbstractEventLoop] = None
) -> CancellationHandle:
    """Run the coroutine produced by `callback` after `delay_ms` on the loop"""
    loop = loop or asyncio.get_running_loop()
    handle = CancellationHandle(delay_ms)

    def _fire():
        if handle.cancelled:
            return
        handle.fired = True
        handle._task = loop.create_task(callback())

    handle._timer = loop.call_later(max(delay_ms, 0) / 1000, _fire)
    return handle
