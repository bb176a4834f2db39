import asyncio
import time
from typing import Callable


def get_timestamp() -> int:
    return int(time.time())


def floor_to_period(timestamp: float, period: int) -> int:
    """Start of the bucket of width ``period`` seconds containing ``timestamp``."""
    return int(timestamp // period) * period


async def wait_until(
    predicate: Callable[[], bool], timeout: float, interval: float = 0.1
) -> bool:
    """Poll ``predicate`` every ``interval`` seconds until it holds or ``timeout`` elapses.

    Yields to the event loop between checks. Returns the final predicate value.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            return predicate()
        await asyncio.sleep(interval)
    return True
