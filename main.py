"""
Entrypoint: load config, init logging, run the call request_conf in config.yaml,
write the response body to stdout and exit with the call's exit code.
"""

import asyncio
import signal
import sys

import structlog
from dotenv import load_dotenv

from httpcall.cancellation import CancelToken
from httpcall.client import create_client
from httpcall.config import Config
from httpcall.errors import CallError, StatusError, exit_code
from httpcall.logs import configure_logging
from httpcall.prepare import prepare_call
from httpcall.stats import build_call_stats, format_timing_summary

logger = structlog.get_logger(__name__)


def _install_signal_handlers(token: CancelToken):
    """Cancel the running call on SIGINT/SIGTERM instead of killing the loop."""
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, token.cancel)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            signal.signal(signum, lambda *_: loop.call_soon_threadsafe(token.cancel))


async def main() -> int:
    """Initialize dependencies and run one call"""
    # Load environment variables from .env file
    load_dotenv()

    config = Config()
    configure_logging(
        level=config.logging.get('level', 'INFO'),
        fmt=config.logging.get('format', 'json'),
    )

    defaults = config.call
    request_conf = config.request
    body = request_conf.get('body')

    try:
        request = prepare_call(
            request_conf.get('path', ''),
            request_conf.get('method', ''),
            query=request_conf.get('query') or (),
            headers=request_conf.get('headers') or (),
            body=body.encode('utf-8') if isinstance(body, str) else None,
            content_type=request_conf.get('content_type', ''),
            timeout=float(defaults.get('timeout', 8)),
            retry=int(defaults.get('retry', 0)),
            retry_backoff=float(defaults.get('retry_backoff', 0.25)),
            max_body_bytes=int(defaults.get('max_body_bytes', 0)),
            enable_timing=bool(defaults.get('timing', False)),
            yes=bool(request_conf.get('yes', False)),
            dry_run=bool(request_conf.get('dry_run', False)),
        )
    except CallError as e:
        logger.error("invalid_call", error=str(e))
        return exit_code(e)

    token = CancelToken()
    _install_signal_handlers(token)

    loop = asyncio.get_running_loop()
    started = loop.time()
    async with create_client(config) as client:
        try:
            response = await client.call(request, token)
        except StatusError as e:
            logger.error("call_failed", error=str(e), status=e.status_code, body=e.body)
            return exit_code(e)
        except CallError as e:
            logger.error("call_failed", error=str(e))
            return exit_code(e)

    stats = build_call_stats(response, int((loop.time() - started) * 1000))
    logger.info("call_completed", status=response.status_code, url=response.url, stats=stats)
    summary = format_timing_summary(stats)
    if summary:
        print(summary, file=sys.stderr)

    sys.stdout.write(response.text)
    return exit_code(None)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
