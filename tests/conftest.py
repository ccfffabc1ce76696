"""Shared fixtures: a fake requests.Session.request that routes by method and URL."""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pytest
import requests


def make_response(
    status: int = 200,
    body: Any = None,
    headers: Dict[str, str] | None = None,
    text: str | None = None,
    url: str = "https://api.github.com/",
) -> requests.Response:
    """Build a real requests.Response with the given status, JSON body (or raw text) and headers."""
    resp = requests.Response()
    resp.status_code = status
    resp.reason = "OK" if status < 400 else "Error"
    resp.url = url
    resp.encoding = "utf-8"
    if text is not None:
        resp._content = text.encode("utf-8")
    elif body is not None:
        resp._content = json.dumps(body).encode("utf-8")
    else:
        resp._content = b""
    resp.headers.update(headers or {})
    return resp


@dataclass
class Call:
    method: str
    url: str
    json: Any = None


@dataclass
class Route:
    method: str
    path: str
    status: int = 200
    body: Any = None
    headers: Dict[str, str] | None = None
    text: str | None = None
    query: str | None = None
    repeat: bool = False

    def matches(self, method: str, url: str, payload: Any) -> bool:
        if method != self.method:
            return False
        if "?" in self.path:
            if not url.endswith(self.path):
                return False
        elif not url.split("?", 1)[0].endswith(self.path):
            return False
        if self.query is not None:
            return isinstance(payload, dict) and self.query in str(payload.get("query", ""))
        return True


@dataclass
class FakeApi:
    """Stands in for requests.Session.request.

    Routes match on method and URL suffix (including the query string when
    the route path has one); GraphQL routes can also match on a fragment of
    the query document. A route is used once unless repeat=True. Unmatched
    requests get a 404 so tolerant code paths can be exercised.
    """

    routes: List[Route] = field(default_factory=list)
    calls: List[Call] = field(default_factory=list)

    def add(self, method: str, path: str, status: int = 200, body: Any = None, **kwargs: Any) -> "FakeApi":
        self.routes.append(Route(method=method, path=path, status=status, body=body, **kwargs))
        return self

    def __call__(self, method: str, url: str, params: Any = None, json: Any = None, **kwargs: Any) -> requests.Response:
        self.calls.append(Call(method=method, url=url, json=json))
        for i, route in enumerate(self.routes):
            if route.matches(method, url, json):
                if not route.repeat:
                    del self.routes[i]
                return make_response(route.status, route.body, headers=route.headers, text=route.text, url=url)
        return make_response(404, {"message": "Not Found"}, url=url)

    def find(self, method: str, path: str) -> List[Call]:
        """Recorded calls with this method whose URL (without query) ends with path."""
        return [c for c in self.calls if c.method == method and c.url.split("?", 1)[0].endswith(path)]


@pytest.fixture
def api() -> FakeApi:
    return FakeApi()
