# simulations/locustfile.py
#
#   locust -f simulations/locustfile.py --headless
#
# Same scenario as `loadtest` but scheduled by locust: AuthorRampShape
# follows settings.stages, AuthorUser runs one iteration per task.
from __future__ import annotations

import time
from urllib.parse import urlsplit

import httpx
from locust import LoadTestShape, User, constant, events, task
from locust.exception import CatchResponseError

from loadtest.core.config import get_settings
from loadtest.core.logging import json_log, setup_logging
from loadtest.services.client import SyncAuthorSender
from loadtest.services.iteration import IterationContext, record_result
from loadtest.services.runner import target_vus_at

SETTINGS = get_settings()
PATH = urlsplit(SETTINGS.target_url).path or "/"
CTX = IterationContext.for_run(SETTINGS, setup_logging(SETTINGS))


class AuthorUser(User):
    host = SETTINGS.base_url()
    wait_time = constant(SETTINGS.sleep_s)

    def on_start(self):
        self.http = httpx.Client()
        self.sender = SyncAuthorSender(self.http, self.host.rstrip("/") + PATH, SETTINGS.request_timeout_s)

    def on_stop(self):
        self.http.close()

    @task
    def create_author(self):
        payload = CTX.build_payload()
        t0 = time.perf_counter()
        try:
            result = self.sender.send(payload)
        except httpx.HTTPError as e:
            self.environment.events.request.fire(
                request_type="POST",
                name=PATH,
                response_time=(time.perf_counter() - t0) * 1000.0,
                response_length=0,
                exception=e,
            )
            raise

        ok = record_result(CTX, result)
        self.environment.events.request.fire(
            request_type="POST",
            name=PATH,
            response_time=result.timings.duration,
            response_length=len(result.body),
            exception=None if ok else CatchResponseError(f"status={result.status_code} body={result.body[:120]}"),
        )
        self.environment.events.request.fire(
            request_type="TREND",
            name=SETTINGS.trend_name,
            response_time=result.timings.sending + result.timings.receiving,
            response_length=0,
        )


class AuthorRampShape(LoadTestShape):
    def tick(self):
        run_time = self.get_run_time()
        if run_time >= SETTINGS.total_duration_s():
            return None
        users = target_vus_at(SETTINGS.stages, run_time, SETTINGS.start_vus)
        return users, max(1, users)


@events.quitting.add_listener
def _(environment, **kwargs):
    json_log(
        CTX.logger,
        {
            "event": "locust_quit",
            "trend": {SETTINGS.trend_name: CTX.trend.summary()},
            "checks": CTX.checks.summary(),
        },
    )
