"""
DevDoc Backend — API Integration Tests
========================================

What:  End-to-end tests of the HTTP surface: auth, projects, files,
       snippets, links, tags, public view, health and error shapes.
How:   httpx AsyncClient over ASGITransport against the real app, with the
       database session dependency pointed at a per-test SQLite file.
"""

import io
import uuid

import pytest
from fastapi import FastAPI, UploadFile
from httpx import ASGITransport, AsyncClient
from starlette.datastructures import Headers

from app.exceptions import RateLimitExceededError, ValidationError
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDMiddleware
from app.routes.projects import upload_file
from app.schemas.project import ProjectCreate
from app.services.auth_service import create_access_token
from app.services.project_service import project_service


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestAuthAPI:

    @pytest.mark.asyncio
    async def test_register_returns_token_and_user(self, test_client):
        response = await test_client.post(
            "/api/auth/register", json={"email": "Dev@Example.com", "password": "secret123"}
        )

        assert response.status_code == 201
        body = response.json()
        assert body["token"]
        assert body["user"]["email"] == "dev@example.com"
        assert set(body["user"]) == {"id", "email"}

    @pytest.mark.asyncio
    async def test_duplicate_email(self, test_client, register_user):
        await register_user("dev@example.com")

        response = await test_client.post(
            "/api/auth/register", json={"email": "dev@example.com", "password": "another1"}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "conflict"
        assert response.json()["error"] == "Email already in use"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"email": "dev@example.com", "password": "short"},
            {"email": "not-an-email", "password": "secret123"},
            {"password": "secret123"},
        ],
    )
    async def test_register_validation(self, test_client, payload):
        response = await test_client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "validation_error"
        assert body["error"]

    @pytest.mark.asyncio
    async def test_login(self, test_client, register_user):
        registered = await register_user("dev@example.com")

        response = await test_client.post(
            "/api/auth/login", json={"email": "DEV@example.com", "password": "secret123"}
        )

        assert response.status_code == 200
        assert response.json()["user"]["id"] == registered["user"]["id"]

    @pytest.mark.asyncio
    async def test_login_bad_password(self, test_client, register_user):
        await register_user("dev@example.com")

        wrong = await test_client.post(
            "/api/auth/login", json={"email": "dev@example.com", "password": "wrong-pass"}
        )
        unknown = await test_client.post(
            "/api/auth/login", json={"email": "nobody@example.com", "password": "secret123"}
        )

        assert wrong.status_code == unknown.status_code == 400
        assert wrong.json()["error"] == unknown.json()["error"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_me(self, test_client, auth_headers):
        response = await test_client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["email"] == "owner@example.com"

    @pytest.mark.asyncio
    async def test_me_without_token(self, test_client):
        response = await test_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["code"] == "unauthorized"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_me_with_garbage_token(self, test_client):
        response = await test_client.get("/api/auth/me", headers=bearer("garbage"))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_token_for_unknown_user(self, test_client):
        response = await test_client.get("/api/auth/me", headers=bearer(create_access_token(uuid.uuid4())))
        assert response.status_code == 401


class TestProjectAPI:

    @pytest.mark.asyncio
    async def test_crud_flow(self, test_client, auth_headers):
        created = await test_client.post(
            "/api/projects",
            json={"name": "Alpha Rocket", "description": "Launch tooling", "tags": ["CLI"]},
            headers=auth_headers,
        )
        assert created.status_code == 201
        project = created.json()
        assert project["tags"] == ["cli"]
        assert project["snippets"] == project["links"] == project["files"] == []

        listed = await test_client.get("/api/projects", headers=auth_headers)
        assert [p["id"] for p in listed.json()] == [project["id"]]

        updated = await test_client.put(
            f"/api/projects/{project['id']}",
            json={
                "notes": "# Notes",
                "links": [{"title": "Docs", "url": "https://docs.example.com"}],
            },
            headers=auth_headers,
        )
        assert updated.status_code == 200
        assert updated.json()["notes"] == "# Notes"
        assert updated.json()["description"] == "Launch tooling"
        assert updated.json()["links"][0]["url"] == "https://docs.example.com"

        fetched = await test_client.get(f"/api/projects/{project['id']}", headers=auth_headers)
        assert fetched.json()["notes"] == "# Notes"
        assert fetched.json()["created_at"] == project["created_at"]

        deleted = await test_client.delete(f"/api/projects/{project['id']}", headers=auth_headers)
        assert deleted.status_code == 200
        assert deleted.json() == {"message": "Project deleted successfully"}

        again = await test_client.delete(f"/api/projects/{project['id']}", headers=auth_headers)
        assert again.status_code == 404
        assert again.json()["error"] == "Project not found"

    @pytest.mark.asyncio
    async def test_requires_auth(self, test_client):
        response = await test_client.get("/api/projects")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_name_required(self, test_client, auth_headers):
        response = await test_client.post("/api/projects", json={"description": "x"}, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Project name is required"

    @pytest.mark.asyncio
    async def test_other_users_project_is_not_found(self, test_client, auth_headers, other_auth_headers):
        project = (
            await test_client.post("/api/projects", json={"name": "Private"}, headers=auth_headers)
        ).json()

        for method in ("get", "delete"):
            response = await getattr(test_client, method)(
                f"/api/projects/{project['id']}", headers=other_auth_headers
            )
            assert response.status_code == 404
        response = await test_client.put(
            f"/api/projects/{project['id']}", json={"name": "Mine now"}, headers=other_auth_headers
        )
        assert response.status_code == 404

        listed = await test_client.get("/api/projects", headers=other_auth_headers)
        assert listed.json() == []

    @pytest.mark.asyncio
    async def test_search_and_sort_params(self, test_client, auth_headers):
        for name in ("Bravo", "Alpha Rocket"):
            await test_client.post("/api/projects", json={"name": name}, headers=auth_headers)

        searched = await test_client.get("/api/projects", params={"search": "rocket"}, headers=auth_headers)
        assert [p["name"] for p in searched.json()] == ["Alpha Rocket"]

        by_name = await test_client.get(
            "/api/projects", params={"sort": "name", "order": "asc"}, headers=auth_headers
        )
        assert [p["name"] for p in by_name.json()] == ["Alpha Rocket", "Bravo"]

        bad = await test_client.get("/api/projects", params={"sort": "password"}, headers=auth_headers)
        assert bad.status_code == 400

    @pytest.mark.asyncio
    async def test_malformed_id(self, test_client, auth_headers):
        response = await test_client.get("/api/projects/not-a-uuid", headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_public_view(self, test_client, auth_headers):
        project = (
            await test_client.post(
                "/api/projects", json={"name": "Shared", "notes": "hello"}, headers=auth_headers
            )
        ).json()

        response = await test_client.get(f"/api/projects/public/{project['id']}")

        assert response.status_code == 200
        assert response.json()["notes"] == "hello"
        assert "user_id" not in response.json()

        missing = await test_client.get(f"/api/projects/public/{uuid.uuid4()}")
        assert missing.status_code == 404


class TestChildrenAPI:

    async def _project(self, client, headers):
        response = await client.post("/api/projects", json={"name": "Alpha Rocket"}, headers=headers)
        return response.json()["id"]

    @pytest.mark.asyncio
    async def test_snippets(self, test_client, auth_headers):
        pid = await self._project(test_client, auth_headers)

        created = await test_client.post(
            f"/api/projects/{pid}/snippets", json={"title": "Hello", "code": "print(1)"}, headers=auth_headers
        )
        assert created.status_code == 200
        snippet = created.json()
        assert snippet["language"] == "javascript"

        updated = await test_client.put(
            f"/api/projects/{pid}/snippets/{snippet['id']}",
            json={"language": "python"},
            headers=auth_headers,
        )
        assert updated.json()["language"] == "python"
        assert updated.json()["code"] == "print(1)"

        deleted = await test_client.delete(f"/api/projects/{pid}/snippets/{snippet['id']}", headers=auth_headers)
        assert deleted.json() == {"message": "Snippet deleted successfully"}

        missing = await test_client.delete(f"/api/projects/{pid}/snippets/{snippet['id']}", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_snippet_requires_code(self, test_client, auth_headers):
        pid = await self._project(test_client, auth_headers)

        response = await test_client.post(
            f"/api/projects/{pid}/snippets", json={"title": "No code"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Title and code are required"

    @pytest.mark.asyncio
    async def test_links(self, test_client, auth_headers):
        pid = await self._project(test_client, auth_headers)

        created = await test_client.post(
            f"/api/projects/{pid}/links",
            json={"title": "Repo", "url": "https://github.com/example/repo"},
            headers=auth_headers,
        )
        assert created.status_code == 200
        link = created.json()

        updated = await test_client.put(
            f"/api/projects/{pid}/links/{link['id']}", json={"title": "Source"}, headers=auth_headers
        )
        assert updated.json()["title"] == "Source"

        deleted = await test_client.delete(f"/api/projects/{pid}/links/{link['id']}", headers=auth_headers)
        assert deleted.json() == {"message": "Link deleted successfully"}

        project = (await test_client.get(f"/api/projects/{pid}", headers=auth_headers)).json()
        assert project["links"] == []

    @pytest.mark.asyncio
    async def test_tags(self, test_client, auth_headers):
        pid = await self._project(test_client, auth_headers)

        added = await test_client.post(f"/api/projects/{pid}/tags", json={"tag": "FastAPI"}, headers=auth_headers)
        assert added.json()["tags"] == ["fastapi"]

        duplicate = await test_client.post(f"/api/projects/{pid}/tags", json={"tag": "fastapi"}, headers=auth_headers)
        assert duplicate.json()["tags"] == ["fastapi"]

        removed = await test_client.delete(f"/api/projects/{pid}/tags/fastapi", headers=auth_headers)
        assert removed.json()["tags"] == []

        empty = await test_client.post(f"/api/projects/{pid}/tags", json={"tag": ""}, headers=auth_headers)
        assert empty.status_code == 400


class TestFilesAPI:

    @pytest.mark.asyncio
    async def test_upload_serve_delete(self, test_client, auth_headers, upload_dir, sample_png_bytes):
        pid = (
            await test_client.post("/api/projects", json={"name": "Files"}, headers=auth_headers)
        ).json()["id"]

        uploaded = await test_client.post(
            f"/api/projects/{pid}/upload",
            files={"file": ("diagram.png", sample_png_bytes, "image/png")},
            headers=auth_headers,
        )
        assert uploaded.status_code == 200, uploaded.text
        record = uploaded.json()
        assert record["original_name"] == "diagram.png"
        assert record["path"] == f"/uploads/{record['filename']}"

        served = await test_client.get(record["path"])
        assert served.status_code == 200
        assert served.content == sample_png_bytes
        assert served.headers["content-type"] == "image/png"

        project = (await test_client.get(f"/api/projects/{pid}", headers=auth_headers)).json()
        assert [f["id"] for f in project["files"]] == [record["id"]]

        deleted = await test_client.delete(f"/api/projects/{pid}/files/{record['id']}", headers=auth_headers)
        assert deleted.json() == {"message": "File deleted successfully"}
        assert not (upload_dir / record["filename"]).exists()

        gone = await test_client.get(record["path"])
        assert gone.status_code == 404

    @pytest.mark.asyncio
    async def test_disallowed_type(self, test_client, auth_headers, upload_dir):
        pid = (
            await test_client.post("/api/projects", json={"name": "Files"}, headers=auth_headers)
        ).json()["id"]

        response = await test_client.post(
            f"/api/projects/{pid}/upload",
            files={"file": ("tool.exe", b"MZ\x90\x00", "application/x-msdownload")},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid file type")
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_missing_file_field(self, test_client, auth_headers):
        pid = (
            await test_client.post("/api/projects", json={"name": "Files"}, headers=auth_headers)
        ).json()["id"]

        response = await test_client.post(
            f"/api/projects/{pid}/upload", data={"other": "value"}, headers=auth_headers
        )

        assert response.status_code == 400
        assert response.json()["error"] == "No file uploaded"

    @pytest.mark.asyncio
    async def test_upload_to_foreign_project(
        self, test_client, auth_headers, other_auth_headers, sample_png_bytes
    ):
        pid = (
            await test_client.post("/api/projects", json={"name": "Files"}, headers=auth_headers)
        ).json()["id"]

        response = await test_client.post(
            f"/api/projects/{pid}/upload",
            files={"file": ("diagram.png", sample_png_bytes, "image/png")},
            headers=other_auth_headers,
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_upload_handle_is_closed(self, db_session, user, upload_dir, sample_png_bytes):
        project = await project_service.create_project(db_session, user.id, ProjectCreate(name="Files"))

        def upload(filename, content, content_type):
            return UploadFile(
                file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type})
            )

        stored = upload("diagram.png", sample_png_bytes, "image/png")
        record = await upload_file(project.id, file=stored, user=user, db=db_session)
        assert record.original_name == "diagram.png"
        assert stored.file.closed

        rejected = upload("tool.exe", b"MZ\x90\x00", "application/x-msdownload")
        with pytest.raises(ValidationError):
            await upload_file(project.id, file=rejected, user=user, db=db_session)
        assert rejected.file.closed


class TestPlatform:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["database"] == "connected"
        assert body["timestamp"]

    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get("/api/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "Route not found"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/health", headers={"X-Request-ID": "trace-123"})
        assert response.headers["X-Request-ID"] == "trace-123"

        generated = await test_client.get("/api/does-not-exist")
        assert generated.headers["X-Request-ID"]
        assert generated.json()["request_id"] == generated.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_security_headers(self, test_client):
        response = await test_client.get("/api/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"

    @pytest.mark.asyncio
    async def test_rate_limited_response_uses_error_body(self):
        limited = FastAPI()

        @limited.get("/api/ping")
        async def ping():
            return {"ok": True}

        limited.add_middleware(RateLimitMiddleware, max_requests=2, window_seconds=60)
        limited.add_middleware(RequestIDMiddleware)

        async with AsyncClient(transport=ASGITransport(app=limited), base_url="http://test") as client:
            for _ in range(2):
                assert (await client.get("/api/ping")).status_code == 200
            response = await client.get("/api/ping", headers={"X-Request-ID": "limit-1"})

        assert response.status_code == 429
        retry_after = int(response.headers["Retry-After"])
        assert 0 < retry_after <= 61
        assert response.json() == {
            "error": f"Too many requests. Please wait {retry_after} seconds before retrying.",
            "code": "rate_limit_exceeded",
            "request_id": "limit-1",
            "details": {"retry_after": retry_after},
        }

    def test_rate_limit_has_no_app_handler(self):
        from app.main import app

        assert RateLimitExceededError not in app.exception_handlers
