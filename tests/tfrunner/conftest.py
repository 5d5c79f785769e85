"""Shared fixtures: an in-memory fake of the Terraform Cloud API.

``FakeTerraformAPI`` is an ``httpx.MockTransport`` handler.  Tests script the
responses (workspace id, status sequences, error bodies) and then inspect
the recorded requests.  No network access is needed.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest

from tfrunner.client import TerraformClient
from tfrunner.orchestrator import RunOrchestrator

ADDRESS = "tfc.test"
BASE = f"https://{ADDRESS}/api/v2"
UPLOAD_URL = "https://archivist.tfc.test/upload/cv-1"


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: httpx.Headers
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class FakeTerraformAPI:
    """Scriptable fake API.

    Status lists are consumed one entry per GET; the last entry repeats once
    the list is exhausted.
    """

    workspace_id: str | None = "ws-1"
    config_version_id: str = "cv-1"
    upload_url: str = UPLOAD_URL
    config_statuses: list[str] = field(default_factory=lambda: ["uploaded"])
    run_id: str = "run-1"
    run_initial_status: str = "pending"
    run_statuses: list[str] = field(default_factory=lambda: ["applied"])
    overrides: dict[tuple[str, str], httpx.Response] = field(default_factory=dict)
    requests: list[RecordedRequest] = field(default_factory=list)

    def respond(self, method: str, path: str, response: httpx.Response) -> None:
        """Force *response* for every ``method path`` request."""
        self.overrides[(method, path)] = response

    def calls(self, method: str, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.method == method and r.url.endswith(path)]

    @staticmethod
    def _next(statuses: list[str]) -> str:
        return statuses.pop(0) if len(statuses) > 1 else statuses[0]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(RecordedRequest(request.method, url, request.headers, request.read()))
        path = url.removeprefix(BASE)

        forced = self.overrides.get((request.method, path))
        if forced is not None:
            return forced

        if request.method == "GET" and path.startswith("/organizations/"):
            data = {"type": "workspaces", "attributes": {"name": path.rsplit("/", 1)[-1]}}
            if self.workspace_id is not None:
                data["id"] = self.workspace_id
            return httpx.Response(200, json={"data": data})

        if request.method == "POST" and path.endswith("/configuration-versions"):
            return httpx.Response(
                201,
                json={
                    "data": {
                        "id": self.config_version_id,
                        "type": "configuration-versions",
                        "attributes": {"status": "pending", "upload-url": self.upload_url},
                    }
                },
            )

        if request.method == "PUT" and url == self.upload_url:
            return httpx.Response(200)

        if request.method == "GET" and path.startswith("/configuration-versions/"):
            status = self._next(self.config_statuses)
            return httpx.Response(200, json={"data": {"id": self.config_version_id, "attributes": {"status": status}}})

        if request.method == "POST" and path == "/runs":
            return httpx.Response(
                201,
                json={"data": {"id": self.run_id, "type": "runs", "attributes": {"status": self.run_initial_status}}},
            )

        if request.method == "GET" and path.startswith("/runs/"):
            status = self._next(self.run_statuses)
            return httpx.Response(200, json={"data": {"id": self.run_id, "attributes": {"status": status}}})

        return httpx.Response(404, json={"errors": [{"status": "404", "title": "not found"}]})


@dataclass
class SleepRecorder:
    delays: list[float] = field(default_factory=list)

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def api() -> FakeTerraformAPI:
    return FakeTerraformAPI()


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> SleepRecorder:
    """Replace the orchestrator's retry sleep; delays are recorded, not slept."""
    recorder = SleepRecorder()
    monkeypatch.setattr(RunOrchestrator, "_sleep", recorder)
    return recorder


@pytest.fixture
async def http_client(api: FakeTerraformAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(api)) as ac:
        yield ac


@pytest.fixture
def client(http_client: httpx.AsyncClient) -> TerraformClient:
    return TerraformClient(token="test-token", address=ADDRESS, http_client=http_client)


@pytest.fixture
def orchestrator(client: TerraformClient, sleeps: SleepRecorder) -> RunOrchestrator:
    return RunOrchestrator(
        client,
        "acme",
        retry_duration=1.0,
        retry_limit=5,
        poll_interval=60.0,
    )
