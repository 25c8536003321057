"""
Deadline coordinator — race an operation against a wall-clock budget.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

DEFAULT_BUDGET_S = 30 * 60.0

T = TypeVar("T")


class Completed(Generic[T]):
    __slots__ = ("result",)

    def __init__(self, result: T):
        self.result = result

    def __repr__(self) -> str:
        return f"Completed({self.result!r})"


class TimedOut:
    __slots__ = ()

    def __repr__(self) -> str:
        return "TimedOut()"


def _discard_result(task: "asyncio.Task[Any]") -> None:
    # Retrieve the abandoned task's outcome so asyncio does not report it as unhandled.
    if not task.cancelled():
        task.exception()


async def race_with_deadline(
    budget: float,
    operation: Awaitable[T],
    on_expire: Callable[[], Awaitable[None]],
    logger: Optional[logging.Logger] = None,
) -> Union[Completed[T], TimedOut]:
    """Run `operation` against a `budget`-second timer.

    The operation's own exceptions propagate. If the timer wins, `on_expire` is
    awaited once and the operation is abandoned, not awaited.
    """
    log = logger or logging.getLogger(__name__)
    task = asyncio.ensure_future(operation)
    try:
        done, _ = await asyncio.wait({task}, timeout=budget)
    except asyncio.CancelledError:
        task.cancel()
        raise
    if task in done:
        return Completed(task.result())

    log.warning("Deadline of %.0fs expired", budget)
    task.add_done_callback(_discard_result)
    await on_expire()
    return TimedOut()
