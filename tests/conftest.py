"""Shared fixtures: a fake urlopen that records requests and replays queued responses."""
import io
import json
import urllib.error

import pytest

from core.ado import AdoConfig


class FakeResponse:
    def __init__(self, body: bytes):
        self._body = body

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeUrlopen:
    """Queued items: dict/list -> JSON body, int -> HTTPError with that status, Exception -> raised."""

    def __init__(self):
        self.requests = []
        self.responses = []

    def queue(self, *items):
        self.responses.extend(items)

    def __call__(self, req, timeout=None):
        self.requests.append(req)
        item = self.responses.pop(0) if self.responses else {}
        if isinstance(item, Exception):
            raise item
        if isinstance(item, int):
            raise urllib.error.HTTPError(
                req.full_url, item, "error", {}, io.BytesIO(b'{"message": "boom"}'),
            )
        if isinstance(item, bytes):
            return FakeResponse(item)
        return FakeResponse(json.dumps(item).encode("utf-8"))

    @property
    def last(self):
        return self.requests[-1]

    @property
    def urls(self):
        return [r.full_url for r in self.requests]

    def body(self, index=-1):
        return json.loads(self.requests[index].data)


@pytest.fixture
def urlopen(monkeypatch):
    fake = FakeUrlopen()
    monkeypatch.setattr("urllib.request.urlopen", fake)
    return fake


@pytest.fixture
def sleeps(monkeypatch):
    calls = []
    monkeypatch.setattr("core.ado.time.sleep", calls.append)
    return calls


@pytest.fixture
def config():
    return AdoConfig(organization="contoso", project="Fabrikam Fiber", pat="secret-pat")


@pytest.fixture
def org_config():
    return AdoConfig(organization="contoso", project=None, pat="secret-pat")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("ADO_ORG", "ADO_ORGANIZATION", "ADO_PROJECT", "ADO_PAT",
                 "ADO_LOG_LEVEL", "ADO_MCP_CONFIG"):
        monkeypatch.delenv(name, raising=False)
