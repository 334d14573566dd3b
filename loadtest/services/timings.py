# loadtest/services/timings.py
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass(frozen=True)
class Timings:
    """Per-request phase durations in milliseconds."""
    blocked: float = 0.0
    connecting: float = 0.0
    sending: float = 0.0
    waiting: float = 0.0
    receiving: float = 0.0
    duration: float = 0.0


class TimingTrace:
    """
    httpx `trace` extension callback. httpcore emits events such as
    "http11.send_request_headers.started"; we key on the part after the
    protocol prefix so HTTP/1.1 and HTTP/2 both work.

    Use `trace` with httpx.Client and `atrace` with httpx.AsyncClient.
    """

    def __init__(self, clock: Callable[[], float] = time.perf_counter):
        self._clock = clock
        self._marks: Dict[str, float] = {}
        self._t0: Optional[float] = None

    def start(self) -> None:
        self._t0 = self._clock()

    def trace(self, event_name: str, info: Dict[str, Any]) -> None:
        _, _, key = event_name.partition(".")
        # keep the first timestamp per event
        self._marks.setdefault(key, self._clock())

    async def atrace(self, event_name: str, info: Dict[str, Any]) -> None:
        self.trace(event_name, info)

    def _span(self, start: str, end: str) -> float:
        a = self._marks.get(start)
        b = self._marks.get(end)
        if a is None or b is None or b < a:
            return 0.0
        return (b - a) * 1000.0

    def timings(self) -> Timings:
        end = self._clock()
        duration = (end - self._t0) * 1000.0 if self._t0 is not None else 0.0
        first_send = self._marks.get("send_request_headers.started")
        blocked = 0.0
        if self._t0 is not None and first_send is not None:
            connect = self._span("connect_tcp.started", "connect_tcp.complete")
            blocked = max(0.0, (first_send - self._t0) * 1000.0 - connect)
        return Timings(
            blocked=blocked,
            connecting=self._span("connect_tcp.started", "connect_tcp.complete"),
            sending=self._span("send_request_headers.started", "send_request_body.complete"),
            waiting=self._span("send_request_body.complete", "receive_response_headers.complete"),
            receiving=self._span("receive_response_headers.complete", "receive_response_body.complete"),
            duration=duration,
        )
