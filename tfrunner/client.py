"""Async HTTP client for the Terraform Cloud / Enterprise API (v2).

Covers only the endpoints the run workflow needs: workspace lookup,
configuration version create/read, bundle upload, and run create/read.

Auth uses a static bearer token sent on every request.  JSON calls use the
JSON:API media type; the bundle upload overrides it with
``application/octet-stream``.  The client performs no retries of its own:
the orchestrator owns the two polling loops and everything else fails fast.
"""

from __future__ import annotations

from collections.abc import AsyncIterable
from typing import Any

import httpx
from loguru import logger

from tfrunner.errors import TerraformAPIError, TerraformNotFoundError
from tfrunner.settings import DEFAULT_ADDRESS

JSONAPI_CONTENT_TYPE = "application/vnd.api+json"
UPLOAD_CONTENT_TYPE = "application/octet-stream"

UploadContent = bytes | AsyncIterable[bytes]


class TerraformClient:
    """Authenticated client bound to one API host.

    Owns its ``httpx.AsyncClient`` unless one is injected (tests pass a client
    built on ``httpx.MockTransport``).  Use as an async context manager or call
    :meth:`aclose` when done.
    """

    def __init__(
        self,
        *,
        token: str,
        address: str = DEFAULT_ADDRESS,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ValueError("token is required")

        self.base_url = f"https://{address}/api/v2"
        self._headers = {
            "Authorization": f"bearer {token}",
            "Content-Type": JSONAPI_CONTENT_TYPE,
        }
        self._timeout = float(timeout_seconds)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()

    async def __aenter__(self) -> TerraformClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- Internals -------------------------------------------------------------

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any | None = None,
        content: UploadContent | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        merged = {**self._headers, **(headers or {})}
        # upload URLs are pre-signed; keep them out of the log
        logger.debug("{} {}", method, path if path.startswith("/") else "<upload-url>")
        resp = await self._client.request(
            method,
            self._url(path),
            headers=merged,
            json=json,
            content=content,
            timeout=self._timeout,
        )
        self._raise_for_status(resp)
        return resp

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        body = resp.text
        message = body[:200] if body else f"HTTP {resp.status_code}"
        errors: list[Any] | None = None

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("errors"), list):
            errors = payload["errors"]
            first = errors[0] if errors else None
            if isinstance(first, dict):
                message = first.get("detail") or first.get("title") or message

        if resp.status_code == 404:
            raise TerraformNotFoundError(message=message, errors=errors, response_body=body)

        raise TerraformAPIError(
            status_code=resp.status_code,
            message=message,
            errors=errors,
            response_body=body,
        )

    @staticmethod
    def _envelope(resp: httpx.Response) -> dict[str, Any]:
        """Decode a JSON:API envelope; an empty body yields an empty dict."""
        if not resp.content:
            return {}
        payload = resp.json()
        return payload if isinstance(payload, dict) else {}

    # -- Public API ------------------------------------------------------------

    async def get_workspace(self, organization: str, name: str) -> dict[str, Any]:
        """Look up a workspace by name.

        Raises TerraformNotFoundError if the organization has no such workspace.
        """
        resp = await self._request("GET", f"/organizations/{organization}/workspaces/{name}")
        return self._envelope(resp)

    async def create_configuration_version(self, workspace_id: str, body: dict[str, Any]) -> dict[str, Any]:
        resp = await self._request("POST", f"/workspaces/{workspace_id}/configuration-versions", json=body)
        return self._envelope(resp)

    async def get_configuration_version(self, config_version_id: str) -> dict[str, Any]:
        resp = await self._request("GET", f"/configuration-versions/{config_version_id}")
        return self._envelope(resp)

    async def upload_configuration(self, upload_url: str, content: UploadContent) -> None:
        """PUT the raw bundle to the configuration version's upload URL."""
        await self._request(
            "PUT",
            upload_url,
            content=content,
            headers={"Content-Type": UPLOAD_CONTENT_TYPE},
        )

    async def create_run(self, body: dict[str, Any]) -> dict[str, Any]:
        resp = await self._request("POST", "/runs", json=body)
        return self._envelope(resp)

    async def get_run(self, run_id: str) -> dict[str, Any]:
        resp = await self._request("GET", f"/runs/{run_id}")
        return self._envelope(resp)
