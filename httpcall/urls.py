"""
Request URL resolution and key/value pair parsing.
"""
import re
from typing import List, Sequence, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .errors import UsageError

TOKEN_HEADER = "X-Ignition-API-Token"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def _split(raw: str, what: str):
    if _CONTROL_CHARS.search(raw):
        raise UsageError(f"parse {what}: invalid control character in {raw!r}")
    try:
        parts = urlsplit(raw)
        # .port validates the port range
        parts.port
    except ValueError as e:
        raise UsageError(f"parse {what}: {e}")
    return parts


def resolve_url(base_url: str, path: str) -> str:
    """Join a base URL and an API path into one absolute URL.

    An absolute ``path`` (one with its own scheme) wins over the base. Otherwise
    the base path and the relative path are joined with exactly one slash, so
    ``http://h/api/`` + ``/v1`` and ``http://h/api`` + ``v1`` both give
    ``http://h/api/v1``.
    """
    base = _split((base_url or "").strip(), "base url")
    if base.scheme not in ("http", "https") or not base.netloc:
        raise UsageError(f"parse base url: {base_url!r} is not an absolute http(s) url")

    ref = _split(path or "", "path")
    if ref.scheme:
        if ref.scheme not in ("http", "https") or not ref.netloc:
            raise UsageError(f"parse path: unsupported url {path!r}")
        return urlunsplit(ref)

    base_path = base.path.rstrip("/")
    if ref.path:
        joined = f"{base_path}/{ref.path.lstrip('/')}"
    else:
        joined = base_path or "/"

    query = ref.query if (ref.path or ref.query) else base.query
    return urlunsplit((base.scheme, base.netloc, joined, query, ref.fragment))


def parse_query_pairs(pairs: Sequence[str]) -> List[Tuple[str, str]]:
    parsed = []
    for pair in pairs or ():
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise UsageError(f"invalid query value {pair!r} (expected key=value)")
        parsed.append((key.strip(), value))
    return parsed


def parse_header_pairs(pairs: Sequence[str], reserved: str = TOKEN_HEADER) -> List[Tuple[str, str]]:
    parsed = []
    for pair in pairs or ():
        key, sep, value = pair.partition(":")
        key = key.strip()
        if not sep or not key:
            raise UsageError(f"invalid header value {pair!r} (expected key:value)")
        if key.lower() == reserved.lower():
            raise UsageError(f"header {reserved!r} is managed by the client and cannot be overridden")
        parsed.append((key, value.strip()))
    return parsed


def merge_query(url: str, pairs: Sequence[str]) -> str:
    """Append ``key=value`` pairs to the query string of ``url``.

    Existing items keep their position and repeated keys add values instead of
    replacing them.
    """
    extra = parse_query_pairs(pairs)
    if not extra:
        return url
    parts = urlsplit(url)
    items = parse_qsl(parts.query, keep_blank_values=True)
    items.extend(extra)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(items), parts.fragment))
