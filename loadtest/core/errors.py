# loadtest/core/errors.py
from __future__ import annotations


class LoadTestError(Exception):
    def __init__(self, code: str, message: str, param: str | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.param = param


class ConfigError(LoadTestError):
    pass


class TargetUnreachable(LoadTestError):
    def __init__(self, url: str, cause: str):
        super().__init__("target_unreachable", f"target not reachable at {url}: {cause}", param="target_url")
        self.url = url


def error_body(code: str, message: str, param: str | None = None, type_: str = "load_test_error"):
    body = {
        "error": {
            "type": type_,
            "code": code,
            "message": message,
        }
    }
    if param:
        body["error"]["param"] = param
    return body
