import pytest

from httpcall.timing import CallTiming, TimingCollector


@pytest.mark.asyncio
async def test_full_breakdown_from_trace_events(fake_clock):
    collector = TimingCollector(clock=fake_clock)

    async def at(when, event):
        fake_clock.now = when
        await collector.trace(event, {})

    fake_clock.now = 0.125
    collector.dns_start()
    fake_clock.now = 0.25
    collector.dns_done()
    await at(0.25, "connection.connect_tcp.started")
    await at(0.5, "connection.connect_tcp.complete")
    await at(0.5, "connection.start_tls.started")
    await at(0.75, "connection.start_tls.complete")
    await at(0.75, "http11.send_request_headers.started")
    await at(1.0, "http11.send_request_body.complete")
    await at(1.25, "http11.receive_response_headers.complete")
    fake_clock.now = 1.75
    collector.body_read_done()
    fake_clock.now = 2.0

    timing = collector.finish()
    assert timing == CallTiming(
        total_ms=2000,
        dns_ms=125,
        connect_ms=250,
        tls_handshake_ms=250,
        first_byte_ms=1250,
        request_write_done_ms=1000,
        body_read_ms=500,
    )


def test_missing_phases_are_omitted(fake_clock):
    collector = TimingCollector(clock=fake_clock)
    fake_clock.now = 0.5

    timing = collector.finish()
    assert timing.total_ms == 500
    assert timing.dns_ms is None
    assert timing.first_byte_ms is None
    assert timing.as_dict() == {"totalMs": 500}


def test_phase_with_only_start_is_omitted(fake_clock):
    collector = TimingCollector(clock=fake_clock)
    fake_clock.now = 0.25
    collector.connect_start()
    fake_clock.now = 0.5

    assert collector.finish().connect_ms is None


def test_body_read_falls_back_to_connection_acquired(fake_clock):
    collector = TimingCollector(clock=fake_clock)
    fake_clock.now = 0.25
    collector.got_connection()
    fake_clock.now = 0.75
    collector.body_read_done()

    assert collector.finish().body_read_ms == 500


def test_body_read_falls_back_to_attempt_start(fake_clock):
    collector = TimingCollector(clock=fake_clock)
    fake_clock.now = 0.5
    collector.body_read_done()

    assert collector.finish().body_read_ms == 500


@pytest.mark.asyncio
async def test_http2_and_unknown_events(fake_clock):
    collector = TimingCollector(clock=fake_clock)
    fake_clock.now = 0.25
    await collector.trace("http2.send_request_headers.started", {})
    await collector.trace("http2.some_new_event.started", {})
    fake_clock.now = 0.5
    await collector.trace("http2.receive_response_headers.complete", {})

    timing = collector.finish()
    assert timing.first_byte_ms == 500
    assert collector.connection_acquired == 0.25


def test_as_dict_uses_camel_case_keys():
    timing = CallTiming(total_ms=10, connect_ms=3, first_byte_ms=7)
    assert timing.as_dict() == {"totalMs": 10, "connectMs": 3, "firstByteMs": 7}
