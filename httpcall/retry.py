"""
Retry policy: which statuses are worth another attempt and how long to wait.
"""
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Mapping, Optional

DEFAULT_BACKOFF = 0.25


def status_hint(status_code: int) -> str:
    if status_code == 401:
        return "token missing or invalid"
    if status_code == 403:
        return "token authenticated but lacks permissions or requires secure connections"
    return ""


def should_retry_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def backoff_floor(retry_backoff: Optional[float]) -> float:
    if retry_backoff is None or retry_backoff <= 0:
        return DEFAULT_BACKOFF
    return retry_backoff


def retry_delay_for_response(
    status_code: int,
    headers: Optional[Mapping[str, str]],
    fallback: float,
    now: Optional[datetime] = None,
) -> float:
    """Seconds to wait before retrying a failed status.

    Only 429 consults ``Retry-After``: an integer is a number of seconds, any
    other value is tried as an HTTP-date. Dates in the past give zero; values
    that parse neither way give ``fallback``.
    """
    if status_code != 429 or headers is None:
        return fallback

    raw = (headers.get("Retry-After") or "").strip()
    if not raw:
        return fallback

    if raw.isascii() and raw.isdigit():
        return float(int(raw))

    try:
        target = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        return fallback
    if target is None:
        return fallback
    if target.tzinfo is None:
        target = target.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    wait = (target - now).total_seconds()
    return max(wait, 0.0)
