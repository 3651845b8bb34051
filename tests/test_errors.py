import asyncio

import httpx
import pytest

from httpcall.cancellation import CallCancelled, DeadlineExceeded
from httpcall.errors import (
    ErrorKind,
    StatusError,
    TransportError,
    UsageError,
    classify,
    exit_code,
    is_retriable,
    stable_exit_codes,
    transport_error,
)


@pytest.mark.parametrize(
    "err, kind, code",
    [
        (UsageError("bad"), ErrorKind.USAGE, 2),
        (StatusError(401), ErrorKind.AUTH, 6),
        (StatusError(403), ErrorKind.AUTH, 6),
        (StatusError(404), ErrorKind.NETWORK, 7),
        (StatusError(429), ErrorKind.NETWORK, 7),
        (StatusError(500), ErrorKind.NETWORK, 7),
        (TransportError(OSError("boom")), ErrorKind.NETWORK, 7),
        (RuntimeError("unknown"), ErrorKind.NETWORK, 7),
    ],
)
def test_classify_and_exit_code(err, kind, code):
    assert classify(err) is kind
    assert exit_code(err) == code


def test_exit_code_for_success():
    assert exit_code(None) == 0


def test_retriable_errors():
    assert is_retriable(StatusError(429))
    assert is_retriable(StatusError(500))
    assert is_retriable(StatusError(503))
    assert is_retriable(TransportError(OSError("x")))
    assert not is_retriable(StatusError(401))
    assert not is_retriable(StatusError(404))
    assert not is_retriable(UsageError("bad"))
    assert not is_retriable(TransportError(OSError("x"), during_read=True))


def test_status_error_message():
    assert str(StatusError(500)) == "http 500"
    assert str(StatusError(401, hint="token missing or invalid")) == "http 401: token missing or invalid"
    assert StatusError(403).auth_failure
    assert not StatusError(500).auth_failure


@pytest.mark.parametrize(
    "cause",
    [
        httpx.ReadTimeout("read timed out"),
        asyncio.TimeoutError(),
        DeadlineExceeded(),
    ],
)
def test_transport_error_flags_timeouts(cause):
    err = transport_error(cause)
    assert err.timeout is True
    assert str(err) == "network timeout"
    assert err.__cause__ is cause


def test_transport_error_wraps_cancellation():
    cause = CallCancelled()
    err = transport_error(cause)
    assert err.timeout is False
    assert str(err) == "network error: call cancelled"
    assert err.cause is cause


def test_stable_exit_codes():
    assert stable_exit_codes() == {"ok": 0, "usage": 2, "auth": 6, "network": 7}
