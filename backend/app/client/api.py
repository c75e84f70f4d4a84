"""
DevDoc Backend — HTTP API Client
==================================

What:  One coroutine per REST endpoint, returning decoded JSON.
How:   httpx.AsyncClient with a base URL (".../api"), a 10 second timeout and
       an Authorization: Bearer header whenever a token is set. Error
       responses become ApiError carrying the server's `error` message.

Usage:
    async with DevDocAPI("http://localhost:5000/api") as api:
        auth = await api.login("me@example.com", "secret1")
        api.token = auth["token"]
        projects = await api.list_projects(search="rocket")
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ApiError(Exception):
    """
    A request that did not produce a 2xx response.

    status_code is 0 when no response arrived (connection error, timeout).
    """

    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.code = code
        super().__init__(f"{status_code}: {message}")


class DevDocAPI:
    def __init__(
        self,
        base_url: str = "http://localhost:5000/api",
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "DevDocAPI":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ── Transport ─────────────────────────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, str(e))
            raise ApiError(0, "Network error: could not reach the server") from e

        if response.is_error:
            message, code = response.reason_phrase or "Request failed", None
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get("error") or message
                code = body.get("code")
            logger.debug("%s %s → %d %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, message, code)

        return response.json()

    # ── Auth ──────────────────────────────────────────────────────────────

    async def register(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/register", json={"email": email, "password": password})

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        return await self._request("POST", "/auth/login", json={"email": email, "password": password})

    async def me(self) -> Dict[str, Any]:
        return await self._request("GET", "/auth/me")

    # ── Projects ──────────────────────────────────────────────────────────

    async def list_projects(self, search: Optional[str] = None, **params: str) -> List[Dict[str, Any]]:
        if search:
            params["search"] = search
        return await self._request("GET", "/projects", params=params)

    async def create_project(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/projects", json=data)

    async def get_project(self, project_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/projects/{project_id}")

    async def update_project(self, project_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/projects/{project_id}", json=updates)

    async def delete_project(self, project_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/projects/{project_id}")

    async def get_public_project(self, project_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/projects/public/{project_id}")

    # ── Files ─────────────────────────────────────────────────────────────

    async def upload_file(
        self,
        project_id: str,
        filename: str,
        content: bytes,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        files = {"file": (filename, content, content_type)}
        return await self._request("POST", f"/projects/{project_id}/upload", files=files)

    async def delete_file(self, project_id: str, file_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/projects/{project_id}/files/{file_id}")

    # ── Snippets ──────────────────────────────────────────────────────────

    async def add_snippet(self, project_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/projects/{project_id}/snippets", json=data)

    async def update_snippet(self, project_id: str, snippet_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/projects/{project_id}/snippets/{snippet_id}", json=updates)

    async def delete_snippet(self, project_id: str, snippet_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/projects/{project_id}/snippets/{snippet_id}")

    # ── Links ─────────────────────────────────────────────────────────────

    async def add_link(self, project_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", f"/projects/{project_id}/links", json=data)

    async def update_link(self, project_id: str, link_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/projects/{project_id}/links/{link_id}", json=updates)

    async def delete_link(self, project_id: str, link_id: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/projects/{project_id}/links/{link_id}")

    # ── Tags ──────────────────────────────────────────────────────────────

    async def add_tag(self, project_id: str, tag: str) -> Dict[str, Any]:
        return await self._request("POST", f"/projects/{project_id}/tags", json={"tag": tag})

    async def remove_tag(self, project_id: str, tag: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/projects/{project_id}/tags/{tag}")

    # ── Health ────────────────────────────────────────────────────────────

    async def health(self) -> Dict[str, Any]:
        return await self._request("GET", "/health")
