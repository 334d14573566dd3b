# loadtest/services/metrics.py
from __future__ import annotations

import threading
from typing import Dict, List

import numpy as np


def _percentiles(vals: List[float]) -> Dict[str, float]:
    if not vals:
        return {"min": 0.0, "avg": 0.0, "med": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0, "max": 0.0}
    arr = np.array(vals, dtype=float)
    return {
        "min": float(np.min(arr)),
        "avg": float(np.mean(arr)),
        "med": float(np.percentile(arr, 50)),
        "p90": float(np.percentile(arr, 90)),
        "p95": float(np.percentile(arr, 95)),
        "p99": float(np.percentile(arr, 99)),
        "max": float(np.max(arr)),
    }


class Trend:
    """
    Named append-only series of samples (ms). Safe to share between
    virtual users running on different threads or tasks.
    """

    def __init__(self, name: str):
        self.name = name
        self._values: List[float] = []
        self._lock = threading.Lock()

    def add(self, value: float) -> None:
        with self._lock:
            self._values.append(float(value))

    def values(self) -> List[float]:
        with self._lock:
            return list(self._values)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._values)

    def summary(self) -> Dict[str, float]:
        vals = self.values()
        out = _percentiles(vals)
        out["count"] = len(vals)
        return out


class Checks:
    """
    Tally of named non-fatal assertions. record() never raises.
    """

    def __init__(self):
        self._passes: Dict[str, int] = {}
        self._fails: Dict[str, int] = {}
        self._lock = threading.Lock()

    def record(self, name: str, ok: bool) -> bool:
        ok = bool(ok)
        with self._lock:
            bucket = self._passes if ok else self._fails
            bucket[name] = bucket.get(name, 0) + 1
        return ok

    def passes(self, name: str) -> int:
        with self._lock:
            return self._passes.get(name, 0)

    def fails(self, name: str) -> int:
        with self._lock:
            return self._fails.get(name, 0)

    def rate(self, name: str) -> float:
        p, f = self.passes(name), self.fails(name)
        total = p + f
        return (p / total) if total > 0 else 0.0

    def names(self) -> List[str]:
        with self._lock:
            return sorted(set(self._passes) | set(self._fails))

    def summary(self) -> Dict[str, Dict[str, float]]:
        return {
            n: {"passes": self.passes(n), "fails": self.fails(n), "rate": self.rate(n)}
            for n in self.names()
        }
