import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import Attendance, AttendanceRecord, Schedule, SchedulePeriod

from conftest import create_grade, enroll


@pytest.mark.asyncio
async def test_create_grade_opens_section_a(client: AsyncClient, admin_headers) -> None:
    data = await create_grade(client, admin_headers, name="Grade 3")
    assert data["name"] == "Grade 3"
    assert data["order"] == 1
    assert data["max_capacity_per_class"] == 29
    assert data["classroom_count"] == 1
    assert data["classrooms"][0]["name"] == "Grade 3-A"
    assert data["student_count"] == 0

    second = await create_grade(client, admin_headers, name="Grade 4", max_capacity_per_class=35)
    assert second["order"] == 2
    assert second["classrooms"][0]["capacity"] == 35


@pytest.mark.asyncio
async def test_duplicate_grade_name_conflicts(client: AsyncClient, admin_headers) -> None:
    await create_grade(client, admin_headers, name="Grade 1")
    response = await client.post("/api/v1/grades", json={"name": "Grade 1"}, headers=admin_headers)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_update_grade(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    response = await client.put(
        f"/api/v1/grades/{grade['id']}",
        json={"description": "Lower primary", "max_capacity_per_class": 40},
        headers=admin_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["description"] == "Lower primary"
    assert data["max_capacity_per_class"] == 40
    # existing sections keep the capacity they were opened with
    assert data["classrooms"][0]["capacity"] == 29


@pytest.mark.asyncio
async def test_delete_grade_with_students_is_refused(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    await enroll(client, admin_headers, grade["id"], grade["classrooms"][0]["id"], 1)

    response = await client.delete(f"/api/v1/grades/{grade['id']}", headers=admin_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == (
        "Cannot delete grade with 1 students. Please transfer students first."
    )

    still_there = await client.get(f"/api/v1/grades/{grade['id']}", headers=admin_headers)
    assert still_there.status_code == 200
    assert still_there.json()["student_count"] == 1


@pytest.mark.asyncio
async def test_delete_empty_grade(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    response = await client.delete(f"/api/v1/grades/{grade['id']}", headers=admin_headers)
    assert response.status_code == 204

    missing = await client.get(f"/api/v1/grades/{grade['id']}", headers=admin_headers)
    assert missing.status_code == 404
    classrooms = await client.get(f"/api/v1/classrooms?grade_id={grade['id']}", headers=admin_headers)
    assert classrooms.json() == []


@pytest.mark.asyncio
async def test_grades_require_token(client: AsyncClient) -> None:
    response = await client.get("/api/v1/grades")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_delete_grade_removes_attendance_and_schedules(
    client: AsyncClient, db_session: AsyncSession, admin_headers
) -> None:
    grade = await create_grade(client, admin_headers)
    classroom_id = grade["classrooms"][0]["id"]
    student = await enroll(client, admin_headers, grade["id"], classroom_id, 1)
    marked = await client.post(
        "/api/v1/attendance",
        json={
            "attendance_date": "2024-03-01",
            "grade_id": grade["id"],
            "classroom_id": classroom_id,
            "records": [{"student_id": student["id"], "status": "present"}],
        },
        headers=admin_headers,
    )
    assert marked.status_code == 200
    saved = await client.post(
        "/api/v1/schedules",
        json={
            "grade_id": grade["id"],
            "day_of_week": "monday",
            "periods": [{"start_time": "08:00", "end_time": "08:40", "activity": "Reading", "period_type": "class"}],
        },
        headers=admin_headers,
    )
    assert saved.status_code == 201

    removed = await client.delete(f"/api/v1/students/{student['id']}", headers=admin_headers)
    assert removed.status_code == 204
    response = await client.delete(f"/api/v1/grades/{grade['id']}", headers=admin_headers)
    assert response.status_code == 204

    for model in (Attendance, AttendanceRecord, Schedule, SchedulePeriod):
        count = (await db_session.execute(select(func.count(model.id)))).scalar()
        assert count == 0, model.__name__
