"""Pytest shared fixtures: stubbed Microsoft Graph, quiet console, isolated audit."""
import io
import json
import pathlib
import sys
from dataclasses import dataclass, field
from typing import Any, Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
import requests
from rich.console import Console

from entra_admin.console import Reporter
from entra_admin.core.graph import ClientCredentialsTokenProvider, GraphClient, UserService

GRAPH_ROOT = "https://graph.microsoft.com/v1.0"
EXT = "extension_8d70fb4f813c44f08d13356ad1d46c2b_User_id"
TOKEN = "TOKEN"


class StubResponse:
    def __init__(self, payload: Any = None, status_code: int = 200, url: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.url = url
        self.text = json.dumps(payload) if payload is not None else ""

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(response=self)


@dataclass
class Call:
    method: str
    path: str
    params: dict = field(default_factory=dict)
    json: Optional[dict] = None
    data: Optional[dict] = None
    headers: dict = field(default_factory=dict)


class FakeGraph:
    """Route table standing in for Graph and the token authority.

    Routes are matched newest first on (method, path) and an optional
    predicate over the query parameters.
    """

    def __init__(self):
        self.calls: list[Call] = []
        self._routes: list[tuple] = []
        self.route("POST", TOKEN, {"access_token": "graph-token", "token_type": "Bearer", "expires_in": 3599})

    def route(self, method, path, response=None, *, status=200, when=None):
        self._routes.append((method, path, when, response, status))

    def calls_to(self, method, path=None):
        return [c for c in self.calls if c.method == method and (path is None or c.path == path)]

    def _path(self, url: str) -> str:
        if url.startswith(GRAPH_ROOT):
            return url[len(GRAPH_ROOT):]
        if url.endswith("/oauth2/v2.0/token"):
            return TOKEN
        return url

    def dispatch(self, method, url, params=None, json=None, data=None, headers=None, **kwargs):
        path = self._path(url)
        params = params or {}
        self.calls.append(Call(method, path, params, json, data, headers or {}))
        for route_method, route_path, when, response, status in reversed(self._routes):
            if route_method != method or route_path != path:
                continue
            if when is not None and not when(params):
                continue
            if isinstance(response, Exception):
                raise response
            if callable(response):
                response = response(params)
            return StubResponse(response, status, url)
        raise RuntimeError(f"Unexpected HTTP {method} in unit test: {url} {params}")


@pytest.fixture(autouse=True)
def fake_graph(monkeypatch):
    """Prevent unit tests from reaching Microsoft Graph or the token authority."""
    graph = FakeGraph()
    monkeypatch.setattr(requests, "get", lambda url, **kw: graph.dispatch("GET", url, **kw))
    monkeypatch.setattr(requests, "post", lambda url, **kw: graph.dispatch("POST", url, **kw))
    monkeypatch.setattr(requests, "delete", lambda url, **kw: graph.dispatch("DELETE", url, **kw))
    return graph


@pytest.fixture(autouse=True)
def temp_audit_dir(monkeypatch, tmp_path):
    """Provide isolated audit directory for each test."""
    audit_dir = tmp_path / "audit"
    audit_file = audit_dir / "user-events.jsonl"
    monkeypatch.setenv("AUDIT_LOG_DIR", str(audit_dir))
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "test-signing-key-for-audit-trail")
    return audit_dir, audit_file


@pytest.fixture()
def console():
    return Console(file=io.StringIO(), force_terminal=False, width=200)


@pytest.fixture()
def reporter(console):
    return Reporter(console)


@pytest.fixture()
def graph_client():
    provider = ClientCredentialsTokenProvider("tenant-id", "client-id", "client-secret")
    return GraphClient(provider, graph_root=GRAPH_ROOT)


@pytest.fixture()
def user_service(graph_client, reporter):
    return UserService(graph_client, reporter, extension_attribute=EXT)


def graph_user(
    id: str,
    mail: Optional[str],
    webportal_id: Any = None,
    creation_type: str = "LocalAccount",
    **extra,
) -> dict:
    """Build a Graph user payload."""
    payload = {
        "id": id,
        "displayName": extra.pop("displayName", f"User {id}"),
        "mail": mail,
        "userPrincipalName": extra.pop("userPrincipalName", f"{id}@contoso.onmicrosoft.com"),
        "creationType": creation_type,
        EXT: webportal_id,
    }
    payload.update(extra)
    return payload
