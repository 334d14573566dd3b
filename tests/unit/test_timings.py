# tests/unit/test_timings.py
import asyncio

from loadtest.services.timings import Timings, TimingTrace


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _feed(tr, clock, events):
    for t, name in events:
        clock.now = t
        tr.trace(name, {})


def test_phases_from_http11_events():
    clock = FakeClock()
    tr = TimingTrace(clock=clock)
    tr.start()
    _feed(
        tr,
        clock,
        [
            (0.001, "connection.connect_tcp.started"),
            (0.003, "connection.connect_tcp.complete"),
            (0.004, "http11.send_request_headers.started"),
            (0.005, "http11.send_request_headers.complete"),
            (0.005, "http11.send_request_body.started"),
            (0.009, "http11.send_request_body.complete"),
            (0.010, "http11.receive_response_headers.started"),
            (0.030, "http11.receive_response_headers.complete"),
            (0.030, "http11.receive_response_body.started"),
            (0.042, "http11.receive_response_body.complete"),
        ],
    )
    clock.now = 0.045
    t = tr.timings()
    assert abs(t.connecting - 2.0) < 1e-6
    assert abs(t.sending - 5.0) < 1e-6
    assert abs(t.waiting - 21.0) < 1e-6
    assert abs(t.receiving - 12.0) < 1e-6
    assert abs(t.duration - 45.0) < 1e-6
    assert abs(t.blocked - 2.0) < 1e-6


def test_missing_events_give_zero():
    tr = TimingTrace(clock=FakeClock())
    t = tr.timings()
    assert t == Timings()


def test_http2_prefix_is_accepted():
    clock = FakeClock()
    tr = TimingTrace(clock=clock)
    _feed(
        tr,
        clock,
        [(1.0, "http2.send_request_headers.started"), (1.002, "http2.send_request_body.complete")],
    )
    assert abs(tr.timings().sending - 2.0) < 1e-6


def test_async_trace_records():
    clock = FakeClock()
    tr = TimingTrace(clock=clock)
    clock.now = 0.5
    asyncio.run(tr.atrace("http11.receive_response_headers.complete", {}))
    clock.now = 0.5125
    asyncio.run(tr.atrace("http11.receive_response_body.complete", {}))
    assert abs(tr.timings().receiving - 12.5) < 1e-6
