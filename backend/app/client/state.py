"""
DevDoc Backend — Client State Containers
==========================================

What:  The state a DevDoc front end keeps: the session (AuthStore), the
       project list (ProjectStore) and UI preferences (Preferences).
How:   Every mutation goes to the server first; local state changes only
       after a successful response. A failed call leaves state untouched,
       records an error Notification and re-raises the ApiError.
Who:   Built on top of DevDocAPI.

State update rules (ProjectStore):
    create            new project prepended to `projects`
    update            project replaced by the server's copy
    delete            project removed
    add_* / upload    child appended to the cached project
    update_*          child replaced by the server's copy
    delete_*          child removed
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from app.client.api import ApiError, DevDocAPI

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Notification:
    """A transient message a UI would show as a toast."""

    level: str  # "success" | "error"
    message: str


def _read_json(path: Optional[Path]) -> Dict[str, Any]:
    if path is None or not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable state file %s: %s", path, str(e))
        return {}
    return data if isinstance(data, dict) else {}


def _write_json(path: Optional[Path], data: Dict[str, Any]) -> None:
    if path is None:
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


# ══════════════════════════════════════════════════════════════════════════
# Preferences
# ══════════════════════════════════════════════════════════════════════════


class Preferences:
    """
    UI preferences persisted as a small JSON file.

    Keys: darkMode (bool), lastProjectId (str | None)
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else None
        data = _read_json(self.path)
        self.dark_mode: bool = bool(data.get("darkMode", False))
        self.last_project_id: Optional[str] = data.get("lastProjectId")

    def save(self) -> None:
        _write_json(self.path, {"darkMode": self.dark_mode, "lastProjectId": self.last_project_id})

    def toggle_dark_mode(self) -> bool:
        self.dark_mode = not self.dark_mode
        self.save()
        return self.dark_mode

    def remember_project(self, project_id: str) -> None:
        self.last_project_id = project_id
        self.save()


# ══════════════════════════════════════════════════════════════════════════
# Session
# ══════════════════════════════════════════════════════════════════════════


class AuthStore:
    """
    Current session: `user`, `token`, and the last auth `error`.

    login()/register() return True on success and False on failure (with
    `error` set), so a form can show the message inline.
    """

    def __init__(self, api: DevDocAPI, token_path: Optional[Path] = None):
        self.api = api
        self.token_path = Path(token_path) if token_path else None
        self.user: Optional[Dict[str, Any]] = None
        self.token: Optional[str] = _read_json(self.token_path).get("token")
        self.error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def _set_session(self, token: Optional[str], user: Optional[Dict[str, Any]]) -> None:
        self.token = token
        self.user = user
        self.api.token = token
        if token:
            _write_json(self.token_path, {"token": token})
        elif self.token_path is not None and self.token_path.exists():
            self.token_path.unlink()

    async def restore(self) -> bool:
        """Validate a saved token via /auth/me; a rejected token is discarded."""
        if not self.token:
            return False
        self.api.token = self.token
        try:
            user = await self.api.me()
        except ApiError as e:
            logger.info("Saved session rejected (%d); signing out", e.status_code)
            self._set_session(None, None)
            return False
        self.user = user
        return True

    async def login(self, email: str, password: str) -> bool:
        return await self._authenticate(self.api.login, email, password, "Login failed")

    async def register(self, email: str, password: str) -> bool:
        return await self._authenticate(self.api.register, email, password, "Registration failed")

    async def _authenticate(
        self,
        call: Callable[[str, str], Awaitable[Dict[str, Any]]],
        email: str,
        password: str,
        fallback: str,
    ) -> bool:
        self.error = None
        try:
            result = await call(email, password)
        except ApiError as e:
            self.error = e.message or fallback
            return False
        self._set_session(result["token"], result["user"])
        return True

    def logout(self) -> None:
        self._set_session(None, None)


# ══════════════════════════════════════════════════════════════════════════
# Projects
# ══════════════════════════════════════════════════════════════════════════


class ProjectStore:
    """Cached project list plus every project and child operation."""

    def __init__(self, api: DevDocAPI, preferences: Optional[Preferences] = None, app_url: str = ""):
        self.api = api
        self.preferences = preferences
        self.app_url = app_url.rstrip("/")
        self.projects: List[Dict[str, Any]] = []
        self.search_query: str = ""
        self.loading: bool = False
        self.notifications: List[Notification] = []

    @property
    def last_project_id(self) -> Optional[str]:
        return self.preferences.last_project_id if self.preferences else None

    # ── Helpers ───────────────────────────────────────────────────────────

    def notify(self, level: str, message: str) -> None:
        self.notifications.append(Notification(level, message))

    async def _call(self, request: Awaitable[T], success: Optional[str], failure: str) -> T:
        """Await a request, recording a notification for the outcome."""
        try:
            result = await request
        except ApiError as e:
            logger.warning("%s: %s", failure, e.message)
            self.notify("error", failure)
            raise
        if success:
            self.notify("success", success)
        return result

    def _find(self, project_id: str) -> Optional[Dict[str, Any]]:
        return next((p for p in self.projects if p["id"] == project_id), None)

    def _replace(self, project: Dict[str, Any]) -> None:
        self.projects = [project if p["id"] == project["id"] else p for p in self.projects]

    def _update_children(self, project_id: str, key: str, update: Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]) -> None:
        cached = self._find(project_id)
        if cached is not None:
            self._replace({**cached, key: update(list(cached.get(key, [])))})

    def share_url(self, project_id: str) -> str:
        """Public, read-only URL of a project."""
        return f"{self.app_url}/public/{project_id}"

    # ── Projects ──────────────────────────────────────────────────────────

    async def fetch_projects(self, search: str = "") -> List[Dict[str, Any]]:
        self.loading = True
        try:
            projects = await self._call(
                self.api.list_projects(search=search or None), None, "Failed to load projects"
            )
        finally:
            self.loading = False
        self.search_query = search
        self.projects = projects
        return projects

    async def create_project(self, data: Dict[str, Any]) -> Dict[str, Any]:
        project = await self._call(
            self.api.create_project(data), "Project created successfully", "Failed to create project"
        )
        self.projects = [project, *self.projects]
        return project

    async def get_project(self, project_id: str) -> Dict[str, Any]:
        project = await self._call(self.api.get_project(project_id), None, "Failed to load project")
        if self.preferences is not None:
            self.preferences.remember_project(project_id)
        return project

    async def update_project(self, project_id: str, updates: Dict[str, Any], quiet: bool = False) -> Dict[str, Any]:
        """`quiet` suppresses the success notification (autosave)."""
        project = await self._call(
            self.api.update_project(project_id, updates),
            None if quiet else "Project updated successfully",
            "Failed to update project",
        )
        self._replace(project)
        return project

    async def delete_project(self, project_id: str) -> None:
        await self._call(
            self.api.delete_project(project_id), "Project deleted successfully", "Failed to delete project"
        )
        self.projects = [p for p in self.projects if p["id"] != project_id]

    async def get_public_project(self, project_id: str) -> Dict[str, Any]:
        return await self._call(self.api.get_public_project(project_id), None, "Project not found")

    # ── Snippets ──────────────────────────────────────────────────────────

    async def add_snippet(self, project_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        snippet = await self._call(
            self.api.add_snippet(project_id, data), "Snippet added successfully", "Failed to add snippet"
        )
        self._update_children(project_id, "snippets", lambda items: [*items, snippet])
        return snippet

    async def update_snippet(self, project_id: str, snippet_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        snippet = await self._call(
            self.api.update_snippet(project_id, snippet_id, updates),
            "Snippet updated successfully",
            "Failed to update snippet",
        )
        self._update_children(
            project_id, "snippets", lambda items: [snippet if s["id"] == snippet_id else s for s in items]
        )
        return snippet

    async def delete_snippet(self, project_id: str, snippet_id: str) -> None:
        await self._call(
            self.api.delete_snippet(project_id, snippet_id),
            "Snippet deleted successfully",
            "Failed to delete snippet",
        )
        self._update_children(project_id, "snippets", lambda items: [s for s in items if s["id"] != snippet_id])

    # ── Links ─────────────────────────────────────────────────────────────

    async def add_link(self, project_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        link = await self._call(
            self.api.add_link(project_id, data), "Link added successfully", "Failed to add link"
        )
        self._update_children(project_id, "links", lambda items: [*items, link])
        return link

    async def update_link(self, project_id: str, link_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        link = await self._call(
            self.api.update_link(project_id, link_id, updates),
            "Link updated successfully",
            "Failed to update link",
        )
        self._update_children(
            project_id, "links", lambda items: [link if item["id"] == link_id else item for item in items]
        )
        return link

    async def delete_link(self, project_id: str, link_id: str) -> None:
        await self._call(
            self.api.delete_link(project_id, link_id), "Link deleted successfully", "Failed to delete link"
        )
        self._update_children(project_id, "links", lambda items: [item for item in items if item["id"] != link_id])

    # ── Files ─────────────────────────────────────────────────────────────

    async def upload_file(
        self, project_id: str, filename: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> Dict[str, Any]:
        record = await self._call(
            self.api.upload_file(project_id, filename, content, content_type),
            "File uploaded successfully",
            "Failed to upload file",
        )
        self._update_children(project_id, "files", lambda items: [*items, record])
        return record

    async def delete_file(self, project_id: str, file_id: str) -> None:
        await self._call(
            self.api.delete_file(project_id, file_id), "File deleted successfully", "Failed to delete file"
        )
        self._update_children(project_id, "files", lambda items: [f for f in items if f["id"] != file_id])

    # ── Tags ──────────────────────────────────────────────────────────────

    async def add_tag(self, project_id: str, tag: str) -> Dict[str, Any]:
        project = await self._call(self.api.add_tag(project_id, tag), None, "Failed to add tag")
        self._replace(project)
        return project

    async def remove_tag(self, project_id: str, tag: str) -> Dict[str, Any]:
        project = await self._call(self.api.remove_tag(project_id, tag), None, "Failed to remove tag")
        self._replace(project)
        return project
