# loadtest/services/runner.py
from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import httpx

from loadtest.core.config import Settings, Stage
from loadtest.core.logging import json_log
from loadtest.schemas.author import AuthorPayload
from loadtest.services.client import AuthorSender, HttpResult
from loadtest.services.iteration import IterationContext, Sender, run_iteration
from loadtest.services.metrics import Checks, Trend

MAX_ERROR_SAMPLES = 10


def _now_utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def target_vus_at(stages: Sequence[Stage], elapsed_s: float, start_vus: int = 0) -> int:
    """
    Number of virtual users wanted `elapsed_s` seconds into the run.
    Each stage moves linearly from the previous target to its own.
    """
    prev = start_vus
    t = 0.0
    for st in stages:
        d = st.seconds()
        if elapsed_s < t + d:
            frac = (elapsed_s - t) / d
            return max(0, math.floor(prev + (st.target - prev) * frac))
        prev = st.target
        t += d
    return prev


@dataclass
class ErrorSample:
    status: Optional[int]
    body: str


@dataclass
class RunResult:
    url: str
    stages: List[Dict[str, Any]]
    trend: Trend
    checks: Checks
    iterations: int = 0
    max_vus: int = 0
    total_seconds: float = 0.0
    status_counts: Dict[str, int] = field(
        default_factory=lambda: {"2xx": 0, "4xx": 0, "5xx": 0, "other": 0, "exceptions": 0}
    )
    error_samples: List[ErrorSample] = field(default_factory=list)
    timestamp_utc: str = field(default_factory=_now_utc_iso)

    def count_status(self, status: Optional[int], body: str) -> None:
        if status is None:
            key = "exceptions"
        elif 200 <= status < 300:
            key = "2xx"
        elif 400 <= status < 500:
            key = "4xx"
        elif 500 <= status < 600:
            key = "5xx"
        else:
            key = "other"
        self.status_counts[key] += 1
        if key != "2xx" and len(self.error_samples) < MAX_ERROR_SAMPLES:
            self.error_samples.append(ErrorSample(status, body[:500]))


class _CountingSender:
    def __init__(self, inner: Sender, result: RunResult):
        self.inner = inner
        self.result = result

    async def send(self, payload: AuthorPayload) -> HttpResult:
        res = await self.inner.send(payload)
        self.result.count_status(res.status_code, res.body)
        return res


class VirtualUser:
    """One simulated client: loops build -> call -> record -> pause until stopped."""

    def __init__(self, idx: int, runner: "LoadRunner"):
        self.idx = idx
        self.runner = runner
        self._stop = asyncio.Event()
        self.task: Optional[asyncio.Task] = None

    def start(self) -> None:
        self.task = asyncio.create_task(self._loop(), name=f"vu-{self.idx}")

    def request_stop(self) -> None:
        # honoured between iterations
        self._stop.set()

    async def _loop(self) -> None:
        while not self._stop.is_set():
            await self.runner.one_iteration(self)


class LoadRunner:
    def __init__(
        self,
        ctx: IterationContext,
        sender: Sender,
        tick_s: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ctx = ctx
        self.settings: Settings = ctx.settings
        self.tick_s = tick_s
        self.sleep = sleep
        self.clock = clock
        self.result = RunResult(
            url=self.settings.target_url,
            stages=[s.model_dump() for s in self.settings.stages],
            trend=ctx.trend,
            checks=ctx.checks,
        )
        self.sender = _CountingSender(sender, self.result)
        self._active: List[VirtualUser] = []
        self._all: List[VirtualUser] = []

    @property
    def active_vus(self) -> int:
        return len(self._active)

    async def one_iteration(self, vu: VirtualUser) -> None:
        try:
            await run_iteration(self.ctx, self.sender, self.sleep)
        except httpx.HTTPError as e:
            # transport failure ends this iteration only
            self.ctx.logger.error("vu=%s iteration failed: %r", vu.idx, e)
            self.result.count_status(None, repr(e))
            # a failing sender may never suspend; give the controller a turn
            await asyncio.sleep(0)
            return
        except Exception:
            self.ctx.logger.exception("vu=%s crashed", vu.idx)
            raise
        self.result.iterations += 1

    def scale_to(self, target: int) -> None:
        while len(self._active) < target:
            vu = VirtualUser(len(self._all), self)
            self._all.append(vu)
            self._active.append(vu)
            vu.start()
        while len(self._active) > target:
            self._active.pop().request_stop()
        self.result.max_vus = max(self.result.max_vus, len(self._active))

    async def _stop_all(self) -> None:
        for vu in self._active:
            vu.request_stop()
        self._active.clear()

        tasks = [vu.task for vu in self._all if vu.task is not None]
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=self.settings.graceful_stop_s)
        for t in pending:
            t.cancel()
        if pending:
            self.ctx.logger.warning("cancelled %d virtual users after graceful stop", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
        for t in done:
            if t.cancelled():
                continue
            exc = t.exception()
            if exc is not None:
                raise exc

    async def run(self) -> RunResult:
        stages = self.settings.stages
        total = self.settings.total_duration_s()
        json_log(self.ctx.logger, {"event": "run_start", "url": self.result.url, "stages": self.result.stages})

        t0 = self.clock()
        try:
            while True:
                elapsed = self.clock() - t0
                if elapsed >= total:
                    break
                self.scale_to(target_vus_at(stages, elapsed, self.settings.start_vus))
                await asyncio.sleep(min(self.tick_s, total - elapsed))
        finally:
            await self._stop_all()
        self.result.total_seconds = self.clock() - t0

        json_log(
            self.ctx.logger,
            {
                "event": "run_end",
                "iterations": self.result.iterations,
                "status_counts": self.result.status_counts,
                "total_seconds": round(self.result.total_seconds, 3),
            },
        )
        return self.result


async def run_load(
    settings: Settings,
    ctx: Optional[IterationContext] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    tick_s: float = 1.0,
) -> RunResult:
    ctx = ctx or IterationContext.for_run(settings)
    async with httpx.AsyncClient(transport=transport) as client:
        sender = AuthorSender(client, settings.target_url, settings.request_timeout_s)
        runner = LoadRunner(ctx, sender, tick_s=tick_s)
        return await runner.run()
