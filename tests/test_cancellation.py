import asyncio
import time

import pytest

from httpcall.cancellation import AttemptTimeout, CallCancelled, CancelToken, DeadlineExceeded


@pytest.mark.asyncio
async def test_wait_sleeps_for_delay():
    token = CancelToken()
    started = time.monotonic()
    await token.wait(0.05)
    assert time.monotonic() - started >= 0.04


@pytest.mark.asyncio
async def test_wait_on_cancelled_token_fails_immediately():
    token = CancelToken()
    token.cancel()
    with pytest.raises(CallCancelled):
        await token.wait(10)


@pytest.mark.asyncio
async def test_cancel_interrupts_wait():
    token = CancelToken()
    asyncio.get_running_loop().call_later(0.02, token.cancel)
    started = time.monotonic()
    with pytest.raises(CallCancelled):
        await token.wait(10)
    assert time.monotonic() - started < 5


@pytest.mark.asyncio
async def test_deadline_cuts_wait_short():
    token = CancelToken.with_timeout(0.05)
    with pytest.raises(DeadlineExceeded):
        await token.wait(10)


def test_error_reports_state():
    clock_now = [100.0]
    token = CancelToken(deadline=101.0, clock=lambda: clock_now[0])
    assert token.error() is None
    assert token.remaining() == 1.0
    clock_now[0] = 101.5
    assert isinstance(token.error(), DeadlineExceeded)
    token.cancel()
    assert isinstance(token.error(), CallCancelled)


@pytest.mark.asyncio
async def test_run_returns_result():
    token = CancelToken()

    async def work():
        return 42

    assert await token.run(work, timeout=1.0) == 42


@pytest.mark.asyncio
async def test_run_propagates_errors():
    token = CancelToken()

    async def work():
        raise ValueError("bad")

    with pytest.raises(ValueError):
        await token.run(work)


@pytest.mark.asyncio
async def test_run_times_out_attempt():
    token = CancelToken()
    with pytest.raises(AttemptTimeout):
        await token.run(lambda: asyncio.sleep(5), timeout=0.02)


@pytest.mark.asyncio
async def test_run_stops_on_cancel():
    token = CancelToken()
    asyncio.get_running_loop().call_later(0.02, token.cancel)
    with pytest.raises(CallCancelled):
        await token.run(lambda: asyncio.sleep(5), timeout=10)


@pytest.mark.asyncio
async def test_run_deadline_narrower_than_timeout():
    token = CancelToken.with_timeout(0.02)
    with pytest.raises(DeadlineExceeded):
        await token.run(lambda: asyncio.sleep(5), timeout=10)
