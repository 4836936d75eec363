from __future__ import annotations

import httpx
import pytest

from school_data.api.main import create_app
from school_data.core.settings import AppSettings
from school_data.db.session import get_async_session


@pytest.fixture
async def client(session_factory):
    app = create_app(AppSettings(CREATE_SCHEMA_ON_STARTUP=False))

    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def _teacher_body(name: str = "Ada", email: str | None = None, students: int = 2) -> dict:
    return {
        "teacher_name": name,
        "age": 36,
        "course_name": "Math",
        "email": email,
        "students": [{"student_name": f"{name}-S{i}", "age": 10} for i in range(students)],
    }


@pytest.mark.anyio("asyncio")
async def test_health_echoes_correlation_id(client):
    response = await client.get("/api/v1/health", headers={"X-Correlation-ID": "cid-42"})

    assert response.status_code == 200
    assert response.json()["message"] == "Healthy"
    assert response.headers["X-Correlation-ID"] == "cid-42"


@pytest.mark.anyio("asyncio")
@pytest.mark.parametrize("path, mode", [("/api/v1/teachers", "explicit"), ("/api/v1/teachers/wrapped", "wrapped")])
async def test_create_teacher_then_read_it_back(client, path, mode):
    created = await client.post(path, json=_teacher_body(students=2))

    assert created.status_code == 201
    body = created.json()
    assert body["mode"] == mode

    detail = await client.get(f"/api/v1/teachers/{body['teacher_id']}")
    assert detail.status_code == 200
    assert detail.json()["teacher_name"] == "Ada"
    assert len(detail.json()["students"]) == 2


@pytest.mark.anyio("asyncio")
async def test_duplicate_email_is_a_conflict_and_writes_nothing(client):
    first = await client.post("/api/v1/teachers", json=_teacher_body("A", email="a@example.org", students=1))
    assert first.status_code == 201

    second = await client.post("/api/v1/teachers", json=_teacher_body("B", email="a@example.org", students=3))

    assert second.status_code == 409
    assert second.json()["error"]["type"] == "constraint_violation"
    listing = await client.get("/api/v1/teachers")
    assert listing.json()["total_count"] == 1
    students = await client.get(f"/api/v1/teachers/{first.json()['teacher_id']}/students")
    assert len(students.json()) == 1


@pytest.mark.anyio("asyncio")
async def test_blank_name_is_rejected(client):
    response = await client.post("/api/v1/teachers", json=_teacher_body("   "))

    assert response.status_code == 422
    assert response.json()["error"]["type"] == "validation_error"
    details = response.json()["error"]["details"]
    assert any("teacher_name must not be blank" in item["msg"] for item in details)


@pytest.mark.anyio("asyncio")
async def test_missing_teacher_returns_error_envelope(client):
    response = await client.get("/api/v1/teachers/999", headers={"X-Correlation-ID": "cid-404"})

    assert response.status_code == 404
    body = response.json()
    assert body["error"]["type"] == "http_error"
    assert body["correlation_id"] == "cid-404"
    assert body["path"] == "/api/v1/teachers/999"


@pytest.mark.anyio("asyncio")
async def test_list_teachers_is_paged(client):
    for name in ["D", "B", "A", "C", "E"]:
        assert (await client.post("/api/v1/teachers", json=_teacher_body(name, students=0))).status_code == 201

    response = await client.get("/api/v1/teachers", params={"page_index": 2, "page_size": 2})

    assert response.status_code == 200
    body = response.json()
    assert [t["teacher_name"] for t in body["items"]] == ["E"]
    assert body["total_count"] == 5
    assert body["total_pages"] == 3
    assert body["has_previous"] is True
    assert body["has_next"] is False


@pytest.mark.anyio("asyncio")
async def test_invalid_paging_is_rejected(client):
    response = await client.get("/api/v1/teachers", params={"page_size": 0})

    assert response.status_code == 422


@pytest.mark.anyio("asyncio")
async def test_add_students_updates_course(client):
    created = await client.post("/api/v1/teachers", json=_teacher_body(students=1))
    teacher_id = created.json()["teacher_id"]

    response = await client.post(
        f"/api/v1/teachers/{teacher_id}/students",
        json={"course_name": "Physics", "students": [{"student_name": "New"}]},
    )

    assert response.status_code == 200
    assert response.json()["course_name"] == "Physics"
    students = await client.get(f"/api/v1/teachers/{teacher_id}/students")
    assert sorted(s["student_name"] for s in students.json()) == ["Ada-S0", "New"]


@pytest.mark.anyio("asyncio")
async def test_add_students_to_missing_teacher(client):
    response = await client.post(
        "/api/v1/teachers/999/students", json={"students": [{"student_name": "New"}]}
    )

    assert response.status_code == 404
    assert response.json()["error"]["type"] == "not_found"


@pytest.mark.anyio("asyncio")
async def test_delete_teacher(client):
    created = await client.post("/api/v1/teachers", json=_teacher_body(students=2))
    teacher_id = created.json()["teacher_id"]

    deleted = await client.delete(f"/api/v1/teachers/{teacher_id}")
    assert deleted.status_code == 200

    assert (await client.get(f"/api/v1/teachers/{teacher_id}")).status_code == 404
    assert (await client.delete(f"/api/v1/teachers/{teacher_id}")).status_code == 404
