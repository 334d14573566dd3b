# tests/integration/test_runner.py
import asyncio
import logging

import httpx
import pytest

from loadtest.core.config import Stage
from loadtest.services.iteration import IterationContext
from loadtest.services.runner import LoadRunner, run_load


def _fast(settings, **extra):
    upd = {"sleep_s": 0.01, "graceful_stop_s": 2.0, "start_vus": 1}
    upd.update(extra)
    return settings.model_copy(update=upd)


def test_run_load_against_mock_endpoint(test_settings, counting_handler):
    s = _fast(test_settings, stages=[Stage(duration="300ms", target=3)])
    ctx = IterationContext.for_run(s)
    result = asyncio.run(run_load(s, ctx=ctx, transport=httpx.MockTransport(counting_handler), tick_s=0.05))

    assert result.iterations > 0
    assert len(counting_handler.requests) == result.status_counts["2xx"] == result.iterations
    assert result.status_counts["exceptions"] == 0
    assert 1 <= result.max_vus <= 3
    assert ctx.trend.count == result.iterations
    assert ctx.checks.passes("status was 201") == result.iterations
    assert result.total_seconds >= 0.3


def test_transport_errors_are_counted_and_run_continues(test_settings, caplog):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    s = _fast(test_settings, stages=[Stage(duration="100ms", target=2)])
    ctx = IterationContext.for_run(s)
    with caplog.at_level(logging.ERROR, logger="loadtest"):
        result = asyncio.run(run_load(s, ctx=ctx, transport=httpx.MockTransport(handler), tick_s=0.02))

    assert result.iterations == 0
    assert result.status_counts["exceptions"] > 0
    assert result.error_samples and result.error_samples[0].status is None
    assert "ConnectError" in result.error_samples[0].body
    assert ctx.trend.count == 0
    assert "iteration failed" in caplog.text


def test_scale_up_then_down_stops_excess_users(test_settings, make_sender):
    s = _fast(test_settings)
    ctx = IterationContext.for_run(s)
    sender = make_sender()

    async def go():
        runner = LoadRunner(ctx, sender)
        runner.scale_to(4)
        assert runner.active_vus == 4
        await asyncio.sleep(0.05)
        runner.scale_to(1)
        assert runner.active_vus == 1
        await runner._stop_all()
        return runner

    runner = asyncio.run(go())
    assert runner.active_vus == 0
    assert runner.result.max_vus == 4
    assert runner.result.iterations > 0
    assert all(vu.task.done() for vu in runner._all)


def test_mixed_statuses_tallied(test_settings, make_sender):
    s = _fast(test_settings, stages=[Stage(duration="150ms", target=1)])
    ctx = IterationContext.for_run(s)
    sender = make_sender(status_code=500, body='{"error":"x"}')

    async def go():
        return await LoadRunner(ctx, sender, tick_s=0.02).run()

    result = asyncio.run(go())
    assert result.iterations > 0
    assert result.status_counts["5xx"] == result.iterations
    assert ctx.checks.fails("status was 201") == result.iterations
    assert ctx.checks.passes("status was 201") == 0
    assert ctx.trend.count == result.iterations


def test_unexpected_error_is_logged_when_it_happens(test_settings, caplog):
    class Exploding:
        async def send(self, payload):
            raise RuntimeError("bad sender")

    ctx = IterationContext.for_run(_fast(test_settings))

    async def go():
        runner = LoadRunner(ctx, Exploding())
        runner.scale_to(1)
        await asyncio.sleep(0.02)
        # logged before the run is torn down
        assert "vu=0 crashed" in caplog.text
        assert runner._all[0].task.done()
        await runner._stop_all()

    with caplog.at_level(logging.ERROR, logger="loadtest"):
        with pytest.raises(RuntimeError, match="bad sender"):
            asyncio.run(go())
    assert ctx.trend.count == 0
