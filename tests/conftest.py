"""Shared fixtures: a fake requests session that records every POST."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
import requests

from coexpression.config import AuthConfig, ClientConfig, ServiceConfig

SERVICE_URL = "https://coexpression.example.org/services/coexpression"


def make_response(
    status_code: int = 200,
    body: Any = None,
    content_type: str = "application/json",
    raw: Optional[bytes] = None,
    reason: str = "OK",
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status_code
    resp.reason = reason
    resp.headers["Content-Type"] = content_type
    if raw is not None:
        resp._content = raw
    elif body is not None:
        resp._content = json.dumps(body).encode("utf-8")
    else:
        resp._content = b""
    return resp


class FakeSession:
    def __init__(self, response: Optional[requests.Response] = None, exc: Optional[Exception] = None):
        self.response = response if response is not None else make_response(body={"result": []})
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"url": url, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self) -> None:
        self.closed = True

    @property
    def last_payload(self) -> Dict[str, Any]:
        return json.loads(self.calls[-1]["data"])


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for var in ("KB_AUTH_TOKEN", "CDMI_TIMEOUT", "COEXPRESSION_CONFIG_PATH", "COEXPRESSION_URL"):
        monkeypatch.delenv(var, raising=False)
    # Keep a real ~/.coexpression/config.yaml from leaking into tests.
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def empty_config() -> ClientConfig:
    return ClientConfig(raw={}, service=ServiceConfig(), auth=AuthConfig())


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()
