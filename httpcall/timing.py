"""
Per-attempt wire timing.

TimingCollector records wall-clock timestamps from lifecycle hooks and turns
them into a millisecond breakdown. httpx reports the lifecycle through the
``trace`` request extension; ``TimingCollector.trace`` is the callback to put
there.
"""
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CallTiming:
    total_ms: int
    dns_ms: Optional[int] = None
    connect_ms: Optional[int] = None
    tls_handshake_ms: Optional[int] = None
    first_byte_ms: Optional[int] = None
    request_write_done_ms: Optional[int] = None
    body_read_ms: Optional[int] = None

    def as_dict(self) -> Dict[str, int]:
        """camelCase view with unmeasured phases left out."""
        out = {"totalMs": self.total_ms}
        optional = {
            "dnsMs": self.dns_ms,
            "connectMs": self.connect_ms,
            "tlsHandshakeMs": self.tls_handshake_ms,
            "firstByteMs": self.first_byte_ms,
            "requestWriteDoneMs": self.request_write_done_ms,
            "bodyReadMs": self.body_read_ms,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out


def _ms(start: float, end: float) -> int:
    return int((end - start) * 1000)


def _span(start: Optional[float], end: Optional[float]) -> Optional[int]:
    if start is None or end is None or end <= start:
        return None
    return _ms(start, end)


class TimingCollector:
    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self.started = clock()
        self.dns_started: Optional[float] = None
        self.dns_finished: Optional[float] = None
        self.connect_started: Optional[float] = None
        self.connect_finished: Optional[float] = None
        self.tls_started: Optional[float] = None
        self.tls_finished: Optional[float] = None
        self.connection_acquired: Optional[float] = None
        self.request_written: Optional[float] = None
        self.first_byte: Optional[float] = None
        self.body_finished: Optional[float] = None

    def dns_start(self):
        self.dns_started = self._clock()

    def dns_done(self):
        self.dns_finished = self._clock()

    def connect_start(self):
        self.connect_started = self._clock()

    def connect_done(self):
        self.connect_finished = self._clock()

    def tls_start(self):
        self.tls_started = self._clock()

    def tls_done(self):
        self.tls_finished = self._clock()

    def got_connection(self):
        # only the first acquisition counts; redirects reuse the collector
        if self.connection_acquired is None:
            self.connection_acquired = self._clock()

    def wrote_request(self):
        self.request_written = self._clock()

    def first_response_byte(self):
        if self.first_byte is None:
            self.first_byte = self._clock()

    def body_read_done(self):
        self.body_finished = self._clock()

    _TRACE_HOOKS = {
        "dns.started": "dns_start",
        "dns.complete": "dns_done",
        "resolve.started": "dns_start",
        "resolve.complete": "dns_done",
        "connect_tcp.started": "connect_start",
        "connect_tcp.complete": "connect_done",
        "connect_unix_socket.started": "connect_start",
        "connect_unix_socket.complete": "connect_done",
        "start_tls.started": "tls_start",
        "start_tls.complete": "tls_done",
        "send_request_headers.started": "got_connection",
        "send_request_body.complete": "wrote_request",
        "receive_response_headers.complete": "first_response_byte",
    }

    async def trace(self, event_name: str, info: Dict[str, Any]) -> None:
        """httpcore trace callback, e.g. ``http11.send_request_body.complete``."""
        _, _, event = event_name.partition(".")
        hook = self._TRACE_HOOKS.get(event)
        if hook is not None:
            getattr(self, hook)()

    def finish(self) -> CallTiming:
        now = self._clock()
        timing = CallTiming(total_ms=_ms(self.started, now))
        timing.dns_ms = _span(self.dns_started, self.dns_finished)
        timing.connect_ms = _span(self.connect_started, self.connect_finished)
        timing.tls_handshake_ms = _span(self.tls_started, self.tls_finished)
        if self.first_byte is not None:
            timing.first_byte_ms = _ms(self.started, self.first_byte)
        if self.request_written is not None:
            timing.request_write_done_ms = _ms(self.started, self.request_written)
        if self.body_finished is not None:
            read_start = self.first_byte
            if read_start is None:
                read_start = self.connection_acquired
            if read_start is None:
                read_start = self.started
            timing.body_read_ms = _span(read_start, self.body_finished)
        return timing
