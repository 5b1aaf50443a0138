from __future__ import annotations

import pytest
from conftest import FakeClock

from ec2runner.wait import TerminalStateError, WaitTimeoutError, wait_for_ready

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]


def sequence(*values):
    """Poll function returning ``values`` in order, the last one forever."""
    remaining = list(values)
    calls: list[object] = []

    async def poll():
        value = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        calls.append(value)
        if isinstance(value, Exception):
            raise value
        return value

    poll.calls = calls  # type: ignore[attr-defined]
    return poll


class TestWaitForReady:
    @pytest.mark.asyncio
    async def test_first_poll_is_immediate(self, clock: FakeClock):
        result = await wait_for_ready(
            sequence("ready"), lambda s: s == "ready", clock=clock, sleep=clock.sleep,
        )

        assert result == "ready"
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_polls_are_spaced_by_interval(self, clock: FakeClock):
        poll = sequence("a", "b", "ready")

        await wait_for_ready(poll, lambda s: s == "ready", interval=7, clock=clock, sleep=clock.sleep)

        assert poll.calls == ["a", "b", "ready"]
        assert clock.sleeps == [7, 7]

    @pytest.mark.asyncio
    async def test_none_means_not_visible_yet(self, clock: FakeClock):
        poll = sequence(None, None, "ready")

        result = await wait_for_ready(poll, lambda s: s == "ready", clock=clock, sleep=clock.sleep)

        assert result == "ready"
        assert len(poll.calls) == 3

    @pytest.mark.asyncio
    async def test_last_poll_lands_on_deadline(self, clock: FakeClock):
        poll = sequence("pending")

        with pytest.raises(WaitTimeoutError, match="instance"):
            await wait_for_ready(
                poll, lambda s: s == "ready",
                timeout=25, interval=10, description="instance", clock=clock, sleep=clock.sleep,
            )

        assert clock.sleeps == [10, 10, 5]
        assert clock.now == 25
        assert len(poll.calls) == 4

    @pytest.mark.asyncio
    async def test_no_poll_after_deadline(self, clock: FakeClock):
        poll = sequence("pending")

        with pytest.raises(WaitTimeoutError):
            await wait_for_ready(
                poll, lambda s: s == "ready", timeout=300, interval=10, clock=clock, sleep=clock.sleep,
            )

        assert len(poll.calls) == 31
        assert clock.now == 300

    @pytest.mark.asyncio
    async def test_terminal_state_raises(self, clock: FakeClock):
        with pytest.raises(TerminalStateError) as exc_info:
            await wait_for_ready(
                sequence("pending", "terminated"),
                lambda s: s == "running",
                terminal_check=lambda s: s == "terminated",
                clock=clock,
                sleep=clock.sleep,
            )

        assert exc_info.value.state == "terminated"
        assert clock.now == 10

    @pytest.mark.asyncio
    async def test_poll_errors_propagate(self, clock: FakeClock):
        error = RuntimeError("api down")

        with pytest.raises(RuntimeError) as exc_info:
            await wait_for_ready(sequence("pending", error), lambda s: False, clock=clock, sleep=clock.sleep)

        assert exc_info.value is error

    @pytest.mark.asyncio
    async def test_real_clock(self):
        with pytest.raises(WaitTimeoutError):
            await wait_for_ready(sequence("pending"), lambda s: False, timeout=0.05, interval=0.01)

    def test_timeout_error_is_a_timeout(self):
        assert issubclass(WaitTimeoutError, TimeoutError)
