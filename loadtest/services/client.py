# loadtest/services/client.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from loadtest.core.errors import TargetUnreachable
from loadtest.schemas.author import AuthorPayload
from loadtest.services.timings import Timings, TimingTrace

DEFAULT_HEADERS: Dict[str, str] = {"Content-Type": "application/json"}


@dataclass
class HttpResult:
    status_code: int
    body: str
    timings: Timings


def _timeout(timeout_s: Optional[float]):
    return httpx.USE_CLIENT_DEFAULT if timeout_s is None else timeout_s


class AuthorSender:
    """
    POSTs author payloads with an httpx.AsyncClient owned by the caller.
    No retry; transport errors propagate.
    """

    def __init__(self, client: httpx.AsyncClient, url: str, timeout_s: Optional[float] = None):
        self.client = client
        self.url = url
        self.timeout_s = timeout_s

    async def send(self, payload: AuthorPayload) -> HttpResult:
        tr = TimingTrace()
        tr.start()
        r = await self.client.post(
            self.url,
            content=payload.to_body(),
            headers=DEFAULT_HEADERS,
            timeout=_timeout(self.timeout_s),
            extensions={"trace": tr.atrace},
        )
        return HttpResult(status_code=r.status_code, body=r.text, timings=tr.timings())


class SyncAuthorSender:
    """Same as AuthorSender over httpx.Client (used under locust/gevent)."""

    def __init__(self, client: httpx.Client, url: str, timeout_s: Optional[float] = None):
        self.client = client
        self.url = url
        self.timeout_s = timeout_s

    def send(self, payload: AuthorPayload) -> HttpResult:
        tr = TimingTrace()
        tr.start()
        r = self.client.post(
            self.url,
            content=payload.to_body(),
            headers=DEFAULT_HEADERS,
            timeout=_timeout(self.timeout_s),
            extensions={"trace": tr.trace},
        )
        return HttpResult(status_code=r.status_code, body=r.text, timings=tr.timings())


async def check_health(url: str, timeout: float = 2.0, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    # quick connectivity check (fail early)
    async with httpx.AsyncClient(transport=transport) as check_client:
        try:
            r = await check_client.get(url, timeout=timeout)
        except httpx.TransportError as e:
            raise TargetUnreachable(url, repr(e)) from e
    if r.status_code >= 500:
        raise TargetUnreachable(url, f"status={r.status_code}")
    return r.status_code
