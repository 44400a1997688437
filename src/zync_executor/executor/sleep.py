"""Jittered, cancellable sleep for the polling loop."""

import asyncio
import random
from collections.abc import Callable


class SleepAborted(Exception):
    """The stop event fired before or during a sleep."""


def compute_sleep_seconds(base: float, jitter: float, *, rng: Callable[[], float] = random.random) -> float:
    """Return ``base`` shifted by a uniform offset in ``[-base*jitter, base*jitter]``, floored at zero."""
    offset = (rng() * 2 - 1) * base * jitter
    return max(0.0, base + offset)


async def sleep(seconds: float, stop: asyncio.Event) -> None:
    """Sleep for ``seconds`` unless ``stop`` is set first, in which case raise :class:`SleepAborted`."""
    if stop.is_set():
        raise SleepAborted("Sleep aborted")
    try:
        await asyncio.wait_for(stop.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return
    raise SleepAborted("Sleep aborted")


async def sleep_with_jitter(base: float, jitter: float, stop: asyncio.Event) -> float:
    """Sleep for a freshly jittered duration and return the duration chosen."""
    seconds = compute_sleep_seconds(base, jitter)
    await sleep(seconds, stop)
    return seconds
