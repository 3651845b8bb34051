"""
Call stats envelope attached to machine-readable output.
"""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel

from .client import CallResponse

CALL_STATS_SCHEMA_VERSION = 1


def build_call_stats(response: Optional[CallResponse], timing_ms: int) -> Dict[str, Any]:
    stats: Dict[str, Any] = {
        "version": CALL_STATS_SCHEMA_VERSION,
        "timingMs": timing_ms,
        "bodyBytes": 0,
    }
    if response is None:
        return stats

    stats["bodyBytes"] = response.body_bytes
    if response.timing is not None:
        stats["http"] = response.timing.as_dict()
    if response.truncated:
        stats["truncated"] = True
    return stats


class CallStats(BaseModel):
    version: Literal[1]
    timingMs: int = 0
    bodyBytes: int = 0
    http: Optional[Dict[str, Any]] = None
    truncated: bool = False


def decode_call_stats(raw: Any) -> Dict[str, Any]:
    """Validate a stats payload read back from JSON output.

    Raises ValueError (pydantic's ValidationError included) on a bad payload.
    """
    if raw is None:
        raise ValueError("missing stats payload")
    if not isinstance(raw, dict):
        raise ValueError(f"unsupported stats payload type {type(raw).__name__}")
    return CallStats.model_validate(raw).model_dump()


def format_timing_summary(stats: Dict[str, Any]) -> Optional[str]:
    body_bytes = stats.get("bodyBytes", 0)
    truncated = "true" if stats.get("truncated") else "false"
    if stats.get("http"):
        return f"timing\thttp={stats['http']}\tbodyBytes={body_bytes}\ttruncated={truncated}"
    if stats.get("truncated") or body_bytes:
        return f"timing\tbodyBytes={body_bytes}\ttruncated={truncated}"
    return None
