# loadtest/services/iteration.py
from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Protocol

from loadtest.core.config import Settings
from loadtest.core.logging import get_logger
from loadtest.schemas.author import AuthorPayload
from loadtest.services.client import HttpResult
from loadtest.services.metrics import Checks, Trend
from loadtest.services.payload import build_author_payload


class Sender(Protocol):
    async def send(self, payload: AuthorPayload) -> HttpResult: ...


@dataclass
class IterationContext:
    """
    Everything one iteration touches. Trend and checks are shared across
    virtual users; settings are read-only for the run.
    """
    settings: Settings
    trend: Trend
    checks: Checks
    logger: logging.Logger = field(default_factory=get_logger)
    rng: Optional[random.Random] = None

    @classmethod
    def for_run(cls, settings: Settings, logger: Optional[logging.Logger] = None) -> "IterationContext":
        rng = random.Random(settings.seed) if settings.seed is not None else None
        return cls(
            settings=settings,
            trend=Trend(settings.trend_name),
            checks=Checks(),
            logger=logger or get_logger(),
            rng=rng,
        )

    def build_payload(self) -> AuthorPayload:
        return build_author_payload(self.rng, self.settings.string_length)


def record_result(ctx: IterationContext, result: HttpResult) -> bool:
    """
    Post-request steps shared by the asyncio runner and the locust adapter:
    diagnostic log on unexpected status, one trend sample, one check.
    """
    expected = ctx.settings.expected_status
    if result.status_code != expected:
        ctx.logger.warning("unexpected status=%s body=%s", result.status_code, result.body)

    ctx.trend.add(result.timings.sending + result.timings.receiving)
    return ctx.checks.record(ctx.settings.check_name, result.status_code == expected)


async def run_iteration(
    ctx: IterationContext,
    sender: Sender,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> bool:
    payload = ctx.build_payload()
    result = await sender.send(payload)
    ok = record_result(ctx, result)
    await sleep(ctx.settings.sleep_s)
    return ok
