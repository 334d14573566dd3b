# loadtest/core/config.py
from __future__ import annotations

import math
import re
from functools import lru_cache
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from loadtest.core.errors import ConfigError

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str | float | int) -> float:
    """
    Parse a duration like "1m", "30s", "1m30s", "500ms" into seconds.
    Bare numbers are taken as seconds.
    """
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ConfigError("invalid_duration", f"non-finite duration: {value}", param="duration")
        if value < 0:
            raise ConfigError("invalid_duration", f"negative duration: {value}", param="duration")
        return float(value)

    text = str(value).strip()
    if not text:
        raise ConfigError("invalid_duration", "empty duration", param="duration")

    try:
        return parse_duration(float(text))
    except ValueError:
        pass

    pos = 0
    total = 0.0
    for m in _DURATION_PART.finditer(text):
        if m.start() != pos:
            break
        total += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
        pos = m.end()

    if pos != len(text) or not math.isfinite(total):
        raise ConfigError("invalid_duration", f"cannot parse duration {text!r}", param="duration")
    return total


class Stage(BaseModel):
    """
    One ramp stage: linearly move to `target` virtual users over `duration`.
    """
    duration: str
    target: int

    @field_validator("duration")
    @classmethod
    def _duration_parses(cls, v: str) -> str:
        parse_duration(v)
        return v

    @field_validator("target")
    @classmethod
    def _target_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("target must be >= 0")
        return v

    def seconds(self) -> float:
        return parse_duration(self.duration)

    @classmethod
    def from_cli(cls, value: str) -> "Stage":
        # "1m:100" -> Stage(duration="1m", target=100)
        duration, sep, target = value.partition(":")
        if not sep:
            raise ConfigError("invalid_stage", f"expected DURATION:TARGET, got {value!r}", param="stage")
        try:
            return cls(duration=duration, target=int(target))
        except ValueError as e:
            raise ConfigError("invalid_stage", f"bad stage {value!r}: {e}", param="stage")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOADTEST_", env_file=".env", extra="ignore")

    # Paths
    repo_root: str = "."
    logs_dir: str = "logs"
    log_path: str = "logs/loadtest.jsonl"
    results_dir: str = "artifacts/load"

    # Target
    target_url: str = "http://library-api-app:8080/author"
    expected_status: int = 201
    health_path: str = "/healthz"
    request_timeout_s: Optional[float] = None  # None -> client default

    # Scenario
    string_length: int = 10
    sleep_s: float = 0.1
    trend_name: str = "my_trend"
    check_name: str = "status was 201"
    seed: Optional[int] = None

    # Load shape
    stages: List[Stage] = [Stage(duration="1m", target=100)]
    start_vus: int = 1
    graceful_stop_s: float = 30.0

    # --- derived helpers ---
    def base_url(self) -> str:
        parts = urlsplit(self.target_url)
        if not parts.scheme or not parts.netloc:
            raise ConfigError("invalid_url", f"target_url is not absolute: {self.target_url}", param="target_url")
        return f"{parts.scheme}://{parts.netloc}"

    def health_url(self) -> str:
        return self.base_url() + self.health_path

    def total_duration_s(self) -> float:
        return sum(s.seconds() for s in self.stages)

    def root_path(self) -> Path:
        return Path(self.repo_root).resolve()

    def logs_path(self) -> Path:
        return (self.root_path() / self.logs_dir).resolve()

    def abs_log_path(self) -> Path:
        return (self.root_path() / self.log_path).resolve()

    def abs_results_dir(self) -> Path:
        return (self.root_path() / self.results_dir).resolve()


@lru_cache
def get_settings() -> Settings:
    return Settings()
