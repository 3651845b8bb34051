"""
Turns loose caller input into a CallRequest, rejecting combinations the
gateway should never see.
"""
from typing import BinaryIO, Optional, Sequence

from .client import CallRequest
from .errors import UsageError

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})

DEFAULT_CONTENT_TYPE = "application/json"


def is_mutating_method(method: str) -> bool:
    return (method or "").strip().upper() in MUTATING_METHODS


def is_idempotent_method(method: str) -> bool:
    return (method or "").strip().upper() in IDEMPOTENT_METHODS


def prepare_call(
    path: str,
    method: str = "",
    *,
    query: Sequence[str] = (),
    headers: Sequence[str] = (),
    body: Optional[bytes] = None,
    content_type: str = "",
    timeout: float = 8.0,
    retry: int = 0,
    retry_backoff: float = 0.0,
    stream: Optional[BinaryIO] = None,
    max_body_bytes: int = 0,
    enable_timing: bool = False,
    yes: bool = False,
    dry_run: bool = False,
) -> CallRequest:
    """Validate call options and build the request the client executes.

    Mutating methods need ``yes``. Retries are only allowed for idempotent
    methods. ``dry_run`` asks the gateway not to apply changes.
    """
    method = (method or "").strip().upper() or "GET"
    path = (path or "").strip()

    if not path:
        raise UsageError("required: path")
    if timeout is None or timeout <= 0:
        raise UsageError("timeout must be positive")
    if retry < 0:
        raise UsageError("retry must be >= 0")
    if retry > 0 and (retry_backoff is None or retry_backoff <= 0):
        raise UsageError("retry backoff must be positive when retry is set")
    if is_mutating_method(method) and not yes:
        raise UsageError(f"method {method} requires confirmation (yes)")
    if retry > 0 and not is_idempotent_method(method):
        raise UsageError(f"retry is only supported for idempotent methods; got {method}")

    query = list(query or ())
    if dry_run:
        query.append("dryRun=true")

    content_type = (content_type or "").strip()
    if body and not content_type:
        content_type = DEFAULT_CONTENT_TYPE

    return CallRequest(
        method=method,
        path=path,
        query=tuple(query),
        headers=tuple(headers or ()),
        body=body or None,
        content_type=content_type,
        timeout=timeout,
        retry=retry,
        retry_backoff=retry_backoff,
        stream=stream,
        max_body_bytes=max_body_bytes,
        enable_timing=enable_timing,
    )
