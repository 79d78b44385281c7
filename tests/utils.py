from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import httpx

from chatterm.api.client import ServiceClient
from chatterm.api.schema import AppInfo, Config, Model, Provider
from chatterm.app.core import App
from chatterm.state import ClientState

BASE_URL = "http://chat.test"

# A handler, a (status, payload) tuple, or a JSON payload served with 200.
Route = Any


class FakeService:
    """Routes POST bodies by path and records every call in order."""

    def __init__(self, routes: dict[str, Route] | None = None) -> None:
        self.routes: dict[str, Route] = dict(routes or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.calls.append((request.url.path, body))
        if request.url.path not in self.routes:
            return httpx.Response(404, json={"error": "not found"})
        route = self.routes[request.url.path]
        if callable(route):
            return route(request)
        if isinstance(route, tuple):
            status, payload = route
            return httpx.Response(status, json=payload)
        return httpx.Response(200, json=route)

    def paths(self) -> list[str]:
        return [path for path, _ in self.calls]

    def bodies(self, path: str) -> list[dict[str, Any]]:
        return [body for called, body in self.calls if called == path]


def make_client(service: FakeService) -> ServiceClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(service.handler), base_url=BASE_URL)
    return ServiceClient(BASE_URL, http_client=http_client)


def make_app(service: FakeService, tmp_path: Path, *, state: ClientState | None = None) -> App:
    return App(
        info=AppInfo(),
        config=Config(),
        client=make_client(service),
        state=state or ClientState(),
        state_path=tmp_path / "tui.json",
    )


def provider_json(provider_id: str, *model_ids: str) -> dict[str, Any]:
    return {
        "id": provider_id,
        "name": provider_id.title(),
        "models": {model_id: {"id": model_id, "name": model_id.upper()} for model_id in model_ids},
    }


def provider(provider_id: str, *model_ids: str) -> Provider:
    return Provider.model_validate(provider_json(provider_id, *model_ids))


def model(model_id: str) -> Model:
    return Model(id=model_id, name=model_id.upper())


def session_json(session_id: str, created: float = 1.0, title: str = "") -> dict[str, Any]:
    return {"id": session_id, "title": title, "time": {"created": created, "updated": created}}


def message_json(
    message_id: str,
    role: str,
    text: str,
    *,
    session_id: str = "s1",
    created: float = 1.0,
    completed: float | None = None,
) -> dict[str, Any]:
    time: dict[str, Any] = {"created": created}
    if completed is not None:
        time["completed"] = completed
    return {
        "id": message_id,
        "role": role,
        "parts": [{"type": "text", "text": text}],
        "metadata": {"sessionID": session_id, "time": time, "tool": {}},
    }


def raise_connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)
