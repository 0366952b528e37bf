"""
Person Registry Backend — API Integration Tests
=================================================

What:  End-to-end tests of /api/persons and /health through the ASGI app.
How:   Real routes, services and SQLAlchemy statements against a per-test
       SQLite database; uploads land in a per-test temporary directory.

Scenarios:
    ✅ Create / list / get / update / delete round trips
    ✅ Pagination totals and defaults
    ✅ Update keeps stored file paths unless a new file is sent
    ✅ 400 on bad fields or bad uploads, with nothing written
    ✅ 404 for unknown ids on get, update and delete
    ✅ Security and request ID headers
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.person import Person


async def create(client, form, files=None):
    response = await client.post("/api/persons", data=form, files=files)
    assert response.status_code == 201, response.text
    return response.json()


class TestCreatePerson:

    @pytest.mark.asyncio
    async def test_create_without_files(self, test_client, sample_person_form):
        response = await test_client.post("/api/persons", data=sample_person_form)

        assert response.status_code == 201
        body = response.json()
        assert isinstance(body["id"], int)
        assert body["name"] == "Alice"
        assert body["dob"] == "1990-01-01"
        assert body["phone_number"] == "+1 555-1234"
        assert body["bank_balance"] == "100.50"
        assert body["resume_path"] is None
        assert body["media_path"] is None

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, test_client, sample_person_form):
        first = await create(test_client, sample_person_form)
        second = await create(test_client, sample_person_form)
        assert first["id"] != second["id"]

    @pytest.mark.asyncio
    async def test_create_with_files(
        self, test_client, sample_person_form, sample_pdf_bytes, sample_png_bytes, upload_dir
    ):
        body = await create(test_client, sample_person_form, files={
            "resume": ("cv.pdf", sample_pdf_bytes, "application/pdf"),
            "media": ("me.png", sample_png_bytes, "image/png"),
        })

        assert body["resume_path"].endswith("-cv.pdf")
        assert body["media_path"].endswith("-me.png")
        assert (upload_dir / Path(body["resume_path"]).name).read_bytes() == sample_pdf_bytes
        assert (upload_dir / Path(body["media_path"]).name).read_bytes() == sample_png_bytes

    @pytest.mark.asyncio
    async def test_name_trimmed(self, test_client, sample_person_form):
        sample_person_form["name"] = "  Bob  "
        body = await create(test_client, sample_person_form)
        assert body["name"] == "Bob"

    @pytest.mark.asyncio
    async def test_invalid_fields_rejected(
        self, test_client, sample_person_form, sample_pdf_bytes, upload_dir
    ):
        sample_person_form["bank_balance"] = "-10"
        sample_person_form["phone_number"] = "call me"
        response = await test_client.post(
            "/api/persons",
            data=sample_person_form,
            files={"resume": ("cv.pdf", sample_pdf_bytes, "application/pdf")},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        fields = {error["field"]: error["message"] for error in body["errors"]}
        assert fields == {
            "phone_number": "Phone number must be a valid format",
            "bank_balance": "Bank balance must be a valid positive number",
        }
        assert list(upload_dir.iterdir()) == []

        listing = (await test_client.get("/api/persons")).json()
        assert listing["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_missing_fields_rejected(self, test_client):
        response = await test_client.post("/api/persons", data={})
        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert fields == {"name", "dob", "phone_number", "bank_balance"}

    @pytest.mark.asyncio
    async def test_disallowed_file_type_rejected(self, test_client, sample_person_form, upload_dir):
        response = await test_client.post(
            "/api/persons",
            data=sample_person_form,
            files={"resume": ("notes.txt", b"plain text", "text/plain")},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "upload_error"
        assert body["message"] == "Invalid file type"
        assert body["details"]["field"] == "resume"
        assert list(upload_dir.iterdir()) == []

        listing = (await test_client.get("/api/persons")).json()
        assert listing["pagination"]["total"] == 0


class TestListPersons:

    @pytest.mark.asyncio
    async def test_empty(self, test_client):
        response = await test_client.get("/api/persons")
        assert response.status_code == 200
        assert response.json() == {
            "data": [],
            "pagination": {"page": 1, "limit": 10, "total": 0},
        }

    @pytest.mark.asyncio
    async def test_pages(self, test_client, sample_person_form):
        for index in range(3):
            sample_person_form["name"] = f"Person {index}"
            await create(test_client, sample_person_form)

        body = (await test_client.get("/api/persons", params={"page": 2, "limit": 2})).json()
        assert [row["name"] for row in body["data"]] == ["Person 2"]
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3}

        past_end = (await test_client.get("/api/persons", params={"page": 5, "limit": 2})).json()
        assert past_end["data"] == []
        assert past_end["pagination"]["total"] == 3

    @pytest.mark.asyncio
    async def test_junk_params_use_defaults(self, test_client):
        body = (await test_client.get("/api/persons", params={"page": "abc", "limit": "0"})).json()
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 0}


class TestGetPerson:

    @pytest.mark.asyncio
    async def test_get(self, test_client, sample_person_form):
        created = await create(test_client, sample_person_form)
        response = await test_client.get(f"/api/persons/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    @pytest.mark.asyncio
    async def test_get_missing(self, test_client):
        response = await test_client.get("/api/persons/999")
        assert response.status_code == 404
        assert response.json()["message"] == "Person not found"

    @pytest.mark.asyncio
    async def test_non_numeric_id(self, test_client):
        response = await test_client.get("/api/persons/abc")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestUpdatePerson:

    @pytest.mark.asyncio
    async def test_update_without_files_keeps_paths(
        self, test_client, sample_person_form, sample_pdf_bytes
    ):
        created = await create(test_client, sample_person_form, files={
            "resume": ("cv.pdf", sample_pdf_bytes, "application/pdf"),
        })

        sample_person_form.update(name="Alice B", bank_balance="0")
        response = await test_client.put(f"/api/persons/{created['id']}", data=sample_person_form)

        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Alice B"
        assert body["bank_balance"] == "0.00"
        assert body["resume_path"] == created["resume_path"]
        assert body["media_path"] is None

    @pytest.mark.asyncio
    async def test_update_replaces_only_sent_file(
        self, test_client, sample_person_form, sample_pdf_bytes, sample_png_bytes
    ):
        created = await create(test_client, sample_person_form, files={
            "resume": ("cv.pdf", sample_pdf_bytes, "application/pdf"),
            "media": ("me.png", sample_png_bytes, "image/png"),
        })

        response = await test_client.put(
            f"/api/persons/{created['id']}",
            data=sample_person_form,
            files={"media": ("new.png", sample_png_bytes, "image/png")},
        )

        body = response.json()
        assert response.status_code == 200
        assert body["resume_path"] == created["resume_path"]
        assert body["media_path"].endswith("-new.png")
        assert body["media_path"] != created["media_path"]

    @pytest.mark.asyncio
    async def test_update_missing(self, test_client, sample_person_form, sample_pdf_bytes, upload_dir):
        response = await test_client.put(
            "/api/persons/999",
            data=sample_person_form,
            files={"resume": ("cv.pdf", sample_pdf_bytes, "application/pdf")},
        )
        assert response.status_code == 404
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_update_invalid_date(self, test_client, sample_person_form):
        created = await create(test_client, sample_person_form)
        sample_person_form["dob"] = "1990-02-30"

        response = await test_client.put(f"/api/persons/{created['id']}", data=sample_person_form)

        assert response.status_code == 400
        assert [error["field"] for error in response.json()["errors"]] == ["dob"]
        unchanged = (await test_client.get(f"/api/persons/{created['id']}")).json()
        assert unchanged["dob"] == "1990-01-01"


class TestDeletePerson:

    @pytest.mark.asyncio
    async def test_delete_then_gone(self, test_client, sample_person_form):
        created = await create(test_client, sample_person_form)

        response = await test_client.delete(f"/api/persons/{created['id']}")
        assert response.status_code == 204
        assert response.content == b""

        assert (await test_client.get(f"/api/persons/{created['id']}")).status_code == 404
        assert (await test_client.delete(f"/api/persons/{created['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_missing(self, test_client):
        response = await test_client.delete("/api/persons/999")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestCrossCutting:

    @pytest.mark.asyncio
    async def test_security_headers(self, test_client):
        response = await test_client.get("/api/persons")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "SAMEORIGIN"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/persons", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, test_client):
        response = await test_client.get("/api/persons/999")
        assert len(response.headers["X-Request-ID"]) == 8
        assert response.json()["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"


class TestBoundaryInputs:

    @pytest.mark.asyncio
    async def test_huge_balance_is_validation_error(self, test_client, sample_person_form):
        sample_person_form["bank_balance"] = "1e30"
        response = await test_client.post("/api/persons", data=sample_person_form)

        assert response.status_code == 400
        errors = response.json()["errors"]
        assert errors == [{
            "field": "bank_balance",
            "message": "Bank balance must be a valid positive number",
            "value": "1e30",
        }]

    @pytest.mark.asyncio
    async def test_page_beyond_integer_range_is_empty(self, test_client, sample_person_form):
        await create(test_client, sample_person_form)

        response = await test_client.get(
            "/api/persons", params={"page": "99999999999999999999"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["pagination"]["total"] == 1
        assert body["pagination"]["page"] == 99999999999999999999

    @pytest.mark.asyncio
    async def test_limit_beyond_integer_range_returns_all(self, test_client, sample_person_form):
        await create(test_client, sample_person_form)
        await create(test_client, sample_person_form)

        response = await test_client.get(
            "/api/persons", params={"limit": "99999999999999999999"}
        )

        assert response.status_code == 200
        assert len(response.json()["data"]) == 2

    @pytest.mark.asyncio
    async def test_two_resume_files_rejected(
        self, test_client, sample_person_form, sample_pdf_bytes, upload_dir
    ):
        response = await test_client.post(
            "/api/persons",
            data=sample_person_form,
            files=[
                ("resume", ("a.pdf", sample_pdf_bytes, "application/pdf")),
                ("resume", ("b.pdf", sample_pdf_bytes, "application/pdf")),
            ],
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "upload_error"
        assert body["details"]["field"] == "resume"
        assert list(upload_dir.iterdir()) == []
        assert (await test_client.get("/api/persons")).json()["pagination"]["total"] == 0


class TestCommitFailure:

    @pytest.mark.asyncio
    async def test_failed_commit_is_server_error(
        self, test_client, sample_person_form, sample_pdf_bytes, upload_dir
    ):
        failing_commit = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error"))
        )
        with patch.object(AsyncSession, "commit", failing_commit):
            response = await test_client.post(
                "/api/persons",
                data=sample_person_form,
                files={"resume": ("cv.pdf", sample_pdf_bytes, "application/pdf")},
            )

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "server_error"
        assert body["details"] == "disk I/O error"
        failing_commit.assert_awaited_once()
        assert list(upload_dir.iterdir()) == []
        assert (await test_client.get("/api/persons")).json()["pagination"]["total"] == 0

    @pytest.mark.asyncio
    async def test_row_committed_before_response(self, test_client, database, sample_person_form):
        created = await create(test_client, sample_person_form)

        # A separate session sees the row as soon as the response is back
        async with database.session() as session:
            row = await session.get(Person, created["id"])
        assert row is not None
        assert row.name == "Alice"
