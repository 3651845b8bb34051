"""
Error kinds raised by the call engine and their exit-code mapping.

Usage errors never reach the network. Transport errors wrap whatever broke
underneath the HTTP layer, including timeouts and cancellation.
"""

import asyncio
from enum import Enum
from typing import Dict, Mapping, Optional

import httpx

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_AUTH = 6
EXIT_NETWORK = 7


class ErrorKind(Enum):
    USAGE = "usage"
    AUTH = "auth"
    NETWORK = "network"


class CallError(Exception):
    """Base exception for call failures."""


class UsageError(CallError):
    """The caller supplied an invalid request shape."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class StatusError(CallError):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str = "", hint: str = "", headers: Optional[Mapping[str, str]] = None):
        self.status_code = status_code
        self.body = body
        self.hint = hint
        self.headers = headers
        if hint:
            super().__init__(f"http {status_code}: {hint}")
        else:
            super().__init__(f"http {status_code}")

    @property
    def auth_failure(self) -> bool:
        return self.status_code in (401, 403)


class TransportError(CallError):
    """The exchange could not be completed at the network layer."""

    def __init__(self, cause: Optional[BaseException] = None, *, timeout: bool = False, during_read: bool = False):
        self.cause = cause
        self.timeout = timeout
        self.during_read = during_read
        if timeout:
            message = "network timeout"
        elif cause is not None:
            message = f"network error: {cause}"
        else:
            message = "network error"
        super().__init__(message)


def transport_error(exc: BaseException, *, during_read: bool = False) -> TransportError:
    """Wrap a low-level failure, flagging timeouts."""
    timeout = isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError))
    err = TransportError(exc, timeout=timeout, during_read=during_read)
    err.__cause__ = exc
    return err


def classify(err: BaseException) -> ErrorKind:
    if isinstance(err, UsageError):
        return ErrorKind.USAGE
    if isinstance(err, StatusError) and err.auth_failure:
        return ErrorKind.AUTH
    return ErrorKind.NETWORK


def exit_code(err: Optional[BaseException]) -> int:
    """Pick the process exit code for a call outcome."""
    if err is None:
        return EXIT_OK
    kind = classify(err)
    if kind is ErrorKind.USAGE:
        return EXIT_USAGE
    if kind is ErrorKind.AUTH:
        return EXIT_AUTH
    return EXIT_NETWORK


def is_retriable(err: BaseException) -> bool:
    # a body that was partly consumed cannot be replayed
    if isinstance(err, TransportError):
        return not err.during_read
    if isinstance(err, StatusError):
        return err.status_code == 429 or err.status_code >= 500
    return False


def stable_exit_codes() -> Dict[str, int]:
    return {
        "ok": EXIT_OK,
        "usage": EXIT_USAGE,
        "auth": EXIT_AUTH,
        "network": EXIT_NETWORK,
    }
