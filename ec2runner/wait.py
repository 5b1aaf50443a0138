"""Generic wait/polling utilities.

Bounded polling is a single primitive (poll function, ready predicate,
deadline, interval) so that every wait in the package shares the same
timing guarantees and can be driven by a fake clock in tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeAlias, TypeVar

Clock: TypeAlias = Callable[[], float]
Sleep: TypeAlias = Callable[[float], Awaitable[None]]

T = TypeVar("T")


class WaitTimeoutError(TimeoutError):
    """The deadline passed before the resource became ready."""


class TerminalStateError(RuntimeError):
    """The polled resource reached a state it will never leave."""

    def __init__(self, description: str, state: object) -> None:
        self.state = state
        super().__init__(f"{description} reached terminal state: {state}")


async def wait_for_ready(
    poll_fn: Callable[[], Awaitable[T | None]],
    ready_check: Callable[[T], bool],
    *,
    terminal_check: Callable[[T], bool] | None = None,
    timeout: float = 300.0,
    interval: float = 10.0,
    description: str = "resource",
    clock: Clock | None = None,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Wait until poll_fn returns something that passes ready_check.

    The first poll happens immediately, later ones are spaced by ``interval``.
    The last sleep is shortened so that the final poll lands on the deadline;
    no poll is issued after it and the call never blocks for longer than
    ``timeout`` plus one poll round trip.

    Args:
        poll_fn: Async function that polls for the resource state. Returning
            None means "not visible yet" and is treated as not ready.
        ready_check: Function that returns True when resource is ready.
        terminal_check: Optional function that returns True if resource reached
            a terminal failure state (e.g., terminated, failed).
        timeout: Maximum time to wait in seconds.
        interval: Time between polls in seconds.
        description: Description for error messages.
        clock: Monotonic time source. Defaults to the running loop's clock.
        sleep: Coroutine used to wait between polls.

    Returns:
        The ready resource.

    Raises:
        WaitTimeoutError: If timeout is exceeded.
        TerminalStateError: If resource reaches terminal state.
    """
    now = clock or asyncio.get_running_loop().time
    start = now()

    while True:
        result = await poll_fn()

        if result is not None:
            if ready_check(result):
                return result

            if terminal_check is not None and terminal_check(result):
                raise TerminalStateError(description, result)

        elapsed = now() - start
        if elapsed >= timeout:
            raise WaitTimeoutError(
                f"Timeout waiting for {description} after {timeout:.1f}s"
            )

        await sleep(min(interval, timeout - elapsed))
