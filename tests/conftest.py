# tests/conftest.py
from __future__ import annotations

import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import json
from typing import Any, Dict, List

import httpx
import pytest

from loadtest.core.config import Settings
from loadtest.schemas.author import AuthorPayload
from loadtest.services.client import HttpResult
from loadtest.services.iteration import IterationContext
from loadtest.services.timings import Timings


@pytest.fixture()
def tmp_repo(tmp_path: Path) -> Path:
    """
    Temp repo-like structure so tests don't write into the real logs/ or artifacts/.
    """
    (tmp_path / "logs").mkdir(parents=True, exist_ok=True)
    (tmp_path / "artifacts" / "load").mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture()
def test_settings(tmp_repo: Path) -> Settings:
    return Settings(
        repo_root=str(tmp_repo),
        target_url="http://library-api-app:8080/author",
        stages=[{"duration": "1m", "target": 100}],
    )


@pytest.fixture()
def ctx(test_settings: Settings) -> IterationContext:
    return IterationContext.for_run(test_settings)


class FakeSender:
    """Returns canned results and remembers every payload it was given."""

    def __init__(self, status_code: int = 201, body: str = '{"message":"author created"}', timings: Timings | None = None):
        self.status_code = status_code
        self.body = body
        self.timings = timings or Timings(sending=1.0, waiting=3.0, receiving=2.0, duration=6.0)
        self.payloads: List[AuthorPayload] = []

    async def send(self, payload: AuthorPayload) -> HttpResult:
        self.payloads.append(payload)
        return HttpResult(status_code=self.status_code, body=self.body, timings=self.timings)


class FakeSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture()
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture()
def make_sender():
    return FakeSender


class CountingHandler:
    """httpx.MockTransport handler that records every request."""

    def __init__(self, status_code: int = 201):
        self.status_code = status_code
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"message": "author created"})

    def bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture()
def counting_handler() -> CountingHandler:
    return CountingHandler()
