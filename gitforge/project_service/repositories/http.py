"""HTTP repository manager client.

Talks to the remote repository manager over a small RPC-style JSON API::

    POST {base_url}/repositories/create   {"repository_path": "<path>"}
    POST {base_url}/repositories/delete   {"repository_path": "<path>"}
    GET  {base_url}/repositories/list  -> {"repository_paths": ["<path>", ...]}

``409 Conflict`` on create and ``404 Not Found`` on delete are treated as
success, which is what makes both operations idempotent from the caller's
point of view.  No retries are performed here.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from gitforge.project_service.repositories.base import ProvisioningError


class HttpRepositoryManager:
    """httpx implementation of the RepositoryManager protocol."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float | None = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def create(self, path: str) -> None:
        response = await self._request("POST", "/repositories/create", path, json={"repository_path": path})
        if response.status_code == httpx.codes.CONFLICT:
            logger.info("Repository already provisioned: {}", path)
            return
        _raise_for_status(response, path)

    async def delete(self, path: str) -> None:
        response = await self._request("POST", "/repositories/delete", path, json={"repository_path": path})
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info("Repository already removed: {}", path)
            return
        _raise_for_status(response, path)

    async def list_paths(self) -> list[str]:
        response = await self._request("GET", "/repositories/list", "*")
        _raise_for_status(response, "*")
        return list(response.json().get("repository_paths", []))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise ProvisioningError(path, f"request timed out ({exc.__class__.__name__})", transient=True) from exc
        except httpx.TransportError as exc:
            raise ProvisioningError(path, f"transport error: {exc}", transient=True) from exc


def _raise_for_status(response: httpx.Response, path: str) -> None:
    if response.is_success:
        return
    reason = f"repository manager returned {response.status_code}"
    detail = response.text.strip()
    if detail:
        reason = f"{reason}: {detail[:200]}"
    raise ProvisioningError(path, reason, transient=response.is_server_error)
