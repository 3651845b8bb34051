"""
Gateway call engine: one declarative request in, a response or a classified
error out.
"""

from .cancellation import CallCancelled, CancelToken, DeadlineExceeded
from .client import CallRequest, CallResponse, GatewayClient, create_client
from .errors import (
    CallError,
    ErrorKind,
    StatusError,
    TransportError,
    UsageError,
    classify,
    exit_code,
    is_retriable,
)
from .timing import CallTiming

__all__ = [
    "CallCancelled",
    "CallError",
    "CallRequest",
    "CallResponse",
    "CallTiming",
    "CancelToken",
    "DeadlineExceeded",
    "ErrorKind",
    "GatewayClient",
    "StatusError",
    "TransportError",
    "UsageError",
    "classify",
    "create_client",
    "exit_code",
    "is_retriable",
]

__version__ = "0.1.0"
