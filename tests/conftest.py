"""Shared fixtures: a scripted requests.Session stand-in and a logged-in PocketBase client."""

from __future__ import annotations

import json
import time
from types import SimpleNamespace

import jwt
import pytest

from facetstudio.backend import AuthStore, PocketBase


def make_token(exp: float) -> str:
    return jwt.encode({"exp": int(exp), "id": "u1"}, "test-secret", algorithm="HS256")


class FakeResponse:
    def __init__(self, status: int = 200, payload=None):
        self.status_code = status
        self.content = b"" if payload is None else json.dumps(payload).encode()
        self.text = self.content.decode()

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        return json.loads(self.content)


class FakeSession:
    """Routes requests by (method, url suffix). A route's responses are served in
    order and the last one repeats; an exception instance is raised instead."""

    def __init__(self):
        self.calls = []
        self.routes = []

    def add(self, method: str, path: str, *responses):
        self.routes.append({"method": method, "path": path, "responses": list(responses)})
        return self

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        call = SimpleNamespace(method=method, url=url, params=params, json=json, headers=headers or {})
        self.calls.append(call)
        for route in self.routes:
            if route["method"] == method and url.split("?")[0].endswith(route["path"]):
                responses = route["responses"]
                item = responses.pop(0) if len(responses) > 1 else responses[0]
                if isinstance(item, BaseException):
                    raise item
                if callable(item):
                    item = item(call)
                status, payload = item if isinstance(item, tuple) else (200, item)
                return FakeResponse(status, payload)
        return FakeResponse(404, {"code": 404, "message": "The requested resource wasn't found.", "data": {}})

    def calls_to(self, method: str, path: str):
        return [c for c in self.calls if c.method == method and c.url.endswith(path)]


USER = {"id": "u1", "email": "ana@example.com", "name": "Ana", "verified": True}


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    slept = []
    monkeypatch.setattr(time, "sleep", lambda s: slept.append(s))
    return slept


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def pb(session):
    store = AuthStore(make_token(time.time() + 3600), dict(USER))
    return PocketBase("http://pb.test", store, session=session)


@pytest.fixture
def anon_pb(session):
    return PocketBase("http://pb.test", AuthStore(), session=session)
