"""
Executes one gateway API call: builds each attempt, dispatches it over httpx,
reads the body and decides between success, retry and failure.
Keeps network code separate from configuration and output handling.
"""
import time
from dataclasses import dataclass
from typing import BinaryIO, Optional, Sequence

import httpx
import structlog
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt
from tenacity.wait import wait_base

from .cancellation import CallCancelled, CancelToken
from .config import Config
from .errors import StatusError, TransportError, UsageError, is_retriable, transport_error
from .reader import ReadResult, read_body
from .retry import backoff_floor, retry_delay_for_response, status_hint
from .timing import CallTiming, TimingCollector
from .urls import TOKEN_HEADER, merge_query, parse_header_pairs, resolve_url

logger = structlog.get_logger(__name__)

_DISPATCH_ERRORS = (httpx.HTTPError, CallCancelled, TimeoutError)
_READ_ERRORS = (httpx.HTTPError, CallCancelled, TimeoutError, OSError)
_MIN_READ_WINDOW = 0.001


@dataclass(frozen=True)
class CallRequest:
    method: str
    path: str
    query: Sequence[str] = ()
    headers: Sequence[str] = ()
    body: Optional[bytes] = None
    content_type: str = ""
    timeout: Optional[float] = None
    retry: int = 0
    retry_backoff: float = 0.0
    stream: Optional[BinaryIO] = None
    max_body_bytes: int = 0
    enable_timing: bool = False


@dataclass
class CallResponse:
    method: str
    url: str
    status_code: int
    headers: httpx.Headers
    body: bytes = b""
    body_bytes: int = 0
    truncated: bool = False
    timing: Optional[CallTiming] = None

    @property
    def success(self) -> bool:
        """Check if the call ended with a 2xx status code."""
        return 200 <= self.status_code < 300

    @property
    def encoding(self) -> str:
        content_type = self.headers.get("content-type", "")
        if "charset=" in content_type.lower():
            return content_type.lower().split("charset=")[1].split(";")[0].strip(" \"'")
        return "utf-8"

    @property
    def text(self) -> str:
        """Decode the buffered body using the declared or fallback encoding."""
        if not self.body:
            return ""
        try:
            return self.body.decode(self.encoding)
        except (UnicodeDecodeError, LookupError):
            return self.body.decode("utf-8", errors="replace")


class _RetryAfterWait(wait_base):
    """Wait the backoff floor between attempts unless a 429 names its own delay."""

    def __init__(self, floor: float):
        self.floor = floor

    def __call__(self, retry_state: RetryCallState) -> float:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return self.floor
        exc = outcome.exception()
        if isinstance(exc, StatusError):
            return retry_delay_for_response(exc.status_code, exc.headers, self.floor)
        return self.floor


class GatewayClient:
    def __init__(
        self,
        base_url: str,
        token: str,
        http_client: Optional[httpx.AsyncClient] = None,
        *,
        token_header: str = TOKEN_HEADER,
        close_transport: bool = False,
    ):
        """
        Args:
            base_url: Gateway root every call path is resolved against.
            token: API token sent on every attempt.
            http_client: Shared transport. One is created when omitted.
            token_header: Name of the auth header; callers may not set it.
            close_transport: Close ``http_client`` in aclose() even though it
                was passed in.
        """
        self.base_url = base_url
        self.token = token
        self.token_header = token_header
        self._owns_client = http_client is None or close_transport
        self._client = http_client or httpx.AsyncClient(follow_redirects=True)

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def call(self, request: CallRequest, token: Optional[CancelToken] = None) -> CallResponse:
        """Run ``request`` with retries and return the successful response.

        Raises UsageError before any I/O when the request is malformed,
        StatusError for a final non-2xx answer and TransportError when the
        exchange fails or the caller cancels while waiting to retry.
        """
        url = merge_query(resolve_url(self.base_url, request.path), request.query)
        headers = parse_header_pairs(request.headers, reserved=self.token_header)
        token = token or CancelToken()

        attempts = max(request.retry + 1, 1)
        log = logger.bind(method=request.method, url=url, attempts=attempts)

        async def pause(delay: float):
            await self._pause(token, float(delay))

        def log_retry(retry_state: RetryCallState):
            err = retry_state.outcome.exception()
            log.warning(
                "call_retry_scheduled",
                attempt=retry_state.attempt_number,
                error=str(err),
                delay_seconds=retry_state.next_action.sleep,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception(is_retriable),
            wait=_RetryAfterWait(backoff_floor(request.retry_backoff)),
            sleep=pause,
            before_sleep=log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    return await self._attempt(request, url, headers, token, attempt.retry_state.attempt_number)
        except (StatusError, TransportError) as e:
            log.warning("call_failed", error=str(e))
            raise

    async def _attempt(self, request: CallRequest, url: str, headers, token: CancelToken, attempt: int) -> CallResponse:
        collector = TimingCollector() if request.enable_timing else None
        http_request = self._build_request(request, url, headers, collector)
        attempt_deadline = None
        if request.timeout and request.timeout > 0:
            attempt_deadline = time.monotonic() + request.timeout

        try:
            response = await token.run(
                lambda: self._client.send(http_request, stream=True),
                timeout=request.timeout,
            )
        except _DISPATCH_ERRORS as e:
            raise transport_error(e)

        success = 200 <= response.status_code < 300
        result = await self._read(response, request, token, success, attempt_deadline)
        if collector is not None:
            collector.body_read_done()

        if not success:
            raise StatusError(
                response.status_code,
                body=result.body.decode("utf-8", errors="replace"),
                hint=status_hint(response.status_code),
                headers=response.headers,
            )

        logger.debug("call_succeeded", url=url, attempt=attempt, status=response.status_code,
                     body_bytes=result.body_bytes, truncated=result.truncated)
        return CallResponse(
            method=request.method,
            url=url,
            status_code=response.status_code,
            headers=httpx.Headers(response.headers),
            body=result.body,
            body_bytes=result.body_bytes,
            truncated=result.truncated,
            timing=collector.finish() if collector is not None else None,
        )

    def _build_request(self, request: CallRequest, url: str, headers, collector: Optional[TimingCollector]) -> httpx.Request:
        """Fresh request per attempt so nothing leaks between retries."""
        pairs = [(self.token_header, self.token or "")]
        if request.body and request.content_type:
            pairs.append(("Content-Type", request.content_type))
        pairs.extend(headers)

        extensions = {}
        if collector is not None:
            extensions["trace"] = collector.trace

        try:
            return self._client.build_request(
                request.method,
                url,
                headers=pairs,
                content=request.body or None,
                extensions=extensions,
            )
        except (httpx.InvalidURL, ValueError, TypeError) as e:
            raise UsageError(f"build request: {e}")

    async def _read(
        self,
        response: httpx.Response,
        request: CallRequest,
        token: CancelToken,
        success: bool,
        attempt_deadline: Optional[float],
    ) -> ReadResult:
        # Failure bodies are always buffered so the error keeps the server's text.
        stream = request.stream if success else None
        timeout = None
        if attempt_deadline is not None:
            timeout = max(attempt_deadline - time.monotonic(), _MIN_READ_WINDOW)
        try:
            return await token.run(
                lambda: read_body(response.aiter_bytes(), request.max_body_bytes, stream),
                timeout=timeout,
            )
        except _READ_ERRORS as e:
            logger.warning("call_body_read_failed", url=str(response.url), error=str(e))
            raise transport_error(e, during_read=True)
        finally:
            await response.aclose()

    async def _pause(self, token: CancelToken, delay: float):
        try:
            await token.wait(delay)
        except (CallCancelled, TimeoutError) as e:
            logger.warning("call_retry_abandoned", error=str(e))
            raise transport_error(e)


def create_client(config: Config) -> GatewayClient:
    """Create a GatewayClient with an httpx transport configured from ``config``."""
    http = config.http
    gateway = config.gateway

    base_url = gateway.get('url')
    if not base_url:
        raise ValueError("gateway.url is required (set it in config.yaml or GATEWAY_URL)")

    headers = {}
    if http.get('user_agent'):
        headers['User-Agent'] = str(http['user_agent'])

    http_client = httpx.AsyncClient(
        follow_redirects=bool(http.get('follow_redirects', True)),
        max_redirects=int(http.get('max_redirects', 10)),
        headers=headers,
        limits=httpx.Limits(
            max_connections=int(http.get('max_connections', 20)),
            max_keepalive_connections=int(http.get('max_keepalive_connections', 10)),
        ),
    )
    client = GatewayClient(
        str(base_url),
        str(gateway.get('token') or ''),
        http_client,
        token_header=str(gateway.get('token_header') or TOKEN_HEADER),
        close_transport=True,
    )
    return client
