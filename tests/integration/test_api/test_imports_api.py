"""API tests for import job submission and polling."""

import uuid

import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from canvass_api.core.config import Settings, get_settings
from canvass_api.core.dependencies import get_object_store
from canvass_api.services.import_service import (
    ImportJobPayload,
    compute_file_hash,
    create_import_job,
    process_import_job,
)

CSV_CONTENT = b"Voter ID,First Name,Last Name,Cell Phone\nC-1,Ada,Lovelace,555-0100\nC-2,Alan,Turing,555-0101\n"


class TestInlineImportEndpoint:
    """Tests for POST /api/v1/jobs/import-voters."""

    @pytest.mark.asyncio
    async def test_admin_queues_job_and_polls_result(
        self,
        client: AsyncClient,
        admin_headers: dict[str, str],
        queue,
        async_session: AsyncSession,
        memory_store,
        settings: Settings,
    ) -> None:
        resp = await client.post(
            "/api/v1/jobs/import-voters",
            json={"voters": [{"externalId": "API-1", "firstName": "Ada"}, {"firstName": "No Id"}]},
            headers=admin_headers,
        )
        assert resp.status_code == 202
        body = resp.json()
        assert body["status"] == "pending"

        job_name, payload, key = queue.calls[0]
        assert job_name == "import_voters"
        assert key == body["id"]
        await process_import_job(
            async_session, ImportJobPayload.model_validate(payload), storage=memory_store, settings=settings
        )

        resp = await client.get(f"/api/v1/jobs/{body['id']}", headers=admin_headers)
        assert resp.status_code == 200
        job = resp.json()
        assert job["status"] == "completed"
        assert job["type"] == "import_voters"
        assert job["result"] == {"imported_count": 1, "skipped_missing_external_id": 1, "total_rows": 2}
        assert job["metadata"]["count"] == 2
        assert job["metadata"]["progress"]["phase"] == "finalizing"

    @pytest.mark.asyncio
    async def test_canvasser_forbidden(self, client: AsyncClient, canvasser_headers: dict[str, str], queue) -> None:
        resp = await client.post(
            "/api/v1/jobs/import-voters", json={"voters": [{"externalId": "X"}]}, headers=canvasser_headers
        )
        assert resp.status_code == 403
        assert queue.calls == []

    @pytest.mark.asyncio
    async def test_requires_token(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/jobs/import-voters", json={"voters": [{"externalId": "X"}]})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_empty_voter_list_rejected(self, client: AsyncClient, admin_headers: dict[str, str]) -> None:
        resp = await client.post("/api/v1/jobs/import-voters", json={"voters": []}, headers=admin_headers)
        assert resp.status_code == 422


class TestFileImportEndpoint:
    """Tests for POST /api/v1/imports/voters."""

    @pytest.mark.asyncio
    async def test_upload_stores_file_and_queues_job(
        self, client: AsyncClient, admin_headers: dict[str, str], queue, memory_store, org
    ) -> None:
        resp = await client.post(
            "/api/v1/imports/voters",
            files={"file": ("april.csv", CSV_CONTENT, "text/csv")},
            headers=admin_headers,
        )
        assert resp.status_code == 202
        body = resp.json()
        assert body["duplicate_of_job_id"] is None

        key = f"imports/{org.id}/{body['id']}.csv"
        assert memory_store.objects[key] == CSV_CONTENT
        assert memory_store.content_types[key] == "text/csv"
        assert queue.calls[0][1]["file_key"] == key

        job = (await client.get(f"/api/v1/jobs/{body['id']}", headers=admin_headers)).json()
        assert job["file_key"] == key
        assert job["metadata"]["filename"] == "april.csv"
        assert job["metadata"]["size"] == len(CSV_CONTENT)
        assert job["metadata"]["file_hash"] == compute_file_hash(CSV_CONTENT)

    @pytest.mark.asyncio
    async def test_reupload_reports_duplicate(self, client: AsyncClient, admin_headers: dict[str, str]) -> None:
        files = {"file": ("april.csv", CSV_CONTENT, "text/csv")}
        first = (await client.post("/api/v1/imports/voters", files=files, headers=admin_headers)).json()
        files = {"file": ("april-again.csv", CSV_CONTENT, "text/csv")}
        resp = await client.post("/api/v1/imports/voters", files=files, headers=admin_headers)

        assert resp.status_code == 202
        assert resp.json()["duplicate_of_job_id"] == first["id"]

    @pytest.mark.asyncio
    async def test_xlsx_accepted(self, client: AsyncClient, admin_headers: dict[str, str], memory_store) -> None:
        resp = await client.post(
            "/api/v1/imports/voters",
            files={"file": ("list.XLSX", b"PK\x03\x04", "application/octet-stream")},
            headers=admin_headers,
        )
        assert resp.status_code == 202
        assert any(key.endswith(".xlsx") for key in memory_store.objects)

    @pytest.mark.asyncio
    async def test_unsupported_extension(self, client: AsyncClient, admin_headers: dict[str, str]) -> None:
        resp = await client.post(
            "/api/v1/imports/voters", files={"file": ("notes.txt", b"hello", "text/plain")}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert "Unsupported" in resp.json()["detail"]

    @pytest.mark.asyncio
    async def test_storage_not_configured(
        self, app: FastAPI, client: AsyncClient, admin_headers: dict[str, str]
    ) -> None:
        app.dependency_overrides[get_object_store] = lambda: None
        resp = await client.post(
            "/api/v1/imports/voters", files={"file": ("a.csv", CSV_CONTENT, "text/csv")}, headers=admin_headers
        )
        assert resp.status_code == 503

    @pytest.mark.asyncio
    async def test_oversize_file(
        self, app: FastAPI, client: AsyncClient, admin_headers: dict[str, str], settings: Settings, queue
    ) -> None:
        small = settings.model_copy(update={"max_import_file_size_mb": 1})
        app.dependency_overrides[get_settings] = lambda: small
        resp = await client.post(
            "/api/v1/imports/voters",
            files={"file": ("big.csv", b"x" * (1024 * 1024 + 1), "text/csv")},
            headers=admin_headers,
        )
        assert resp.status_code == 413
        assert queue.calls == []


class TestJobQueries:
    """Tests for GET /api/v1/jobs endpoints."""

    @pytest.mark.asyncio
    async def test_list_with_status_filter(
        self, client: AsyncClient, canvasser_headers: dict[str, str], async_session: AsyncSession, org, admin
    ) -> None:
        await create_import_job(async_session, tenant_id=org.id, user_id=admin.id)
        resp = await client.get("/api/v1/jobs", params={"status": "pending"}, headers=canvasser_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["pagination"]["total"] == 1
        assert body["items"][0]["status"] == "pending"

        resp = await client.get("/api/v1/jobs", params={"status": "failed"}, headers=canvasser_headers)
        assert resp.json()["items"] == []

    @pytest.mark.asyncio
    async def test_unknown_job(self, client: AsyncClient, admin_headers: dict[str, str]) -> None:
        resp = await client.get(f"/api/v1/jobs/{uuid.uuid4()}", headers=admin_headers)
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_other_tenant_job_hidden(
        self, client: AsyncClient, admin_headers: dict[str, str], async_session: AsyncSession, other_tenant
    ) -> None:
        rival_org, rival_admin, _ = other_tenant
        job = await create_import_job(async_session, tenant_id=rival_org.id, user_id=rival_admin.id)
        resp = await client.get(f"/api/v1/jobs/{job.id}", headers=admin_headers)
        assert resp.status_code == 404
