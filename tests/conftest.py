import sys
from pathlib import Path

import httpx
import pytest

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from httpcall.cancellation import CancelToken  # noqa: E402


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingToken(CancelToken):
    """Token that records retry waits instead of sleeping."""

    def __init__(self):
        super().__init__()
        self.waits = []

    async def wait(self, delay: float) -> None:
        self.waits.append(delay)


class Gateway:
    """Scripted MockTransport handler that counts dispatches."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.requests = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()
