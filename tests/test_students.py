from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient

from conftest import create_grade, enroll, student_payload


async def _classroom(client: AsyncClient, headers, classroom_id: str) -> dict:
    response = await client.get(f"/api/v1/classrooms/{classroom_id}", headers=headers)
    assert response.status_code == 200
    return response.json()


@pytest.mark.asyncio
async def test_enrollment_fills_classrooms_in_order(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(
        client, admin_headers, max_capacity_per_class=2, create_initial_classroom=False
    )
    allocated = await client.post(
        "/api/v1/classrooms/allocate", json={"grade_id": grade["id"]}, headers=admin_headers
    )
    classroom_a = allocated.json()
    assert classroom_a["name"] == "Grade 1-A"

    await enroll(client, admin_headers, grade["id"], classroom_a["id"], 1)
    assert (await _classroom(client, admin_headers, classroom_a["id"]))["current_count"] == 1
    await enroll(client, admin_headers, grade["id"], classroom_a["id"], 2)
    full = await _classroom(client, admin_headers, classroom_a["id"])
    assert full["current_count"] == 2
    assert full["is_full"] is True

    refused = await client.post(
        "/api/v1/students",
        json=student_payload(grade["id"], classroom_a["id"], 3),
        headers=admin_headers,
    )
    assert refused.status_code == 409
    assert "full" in refused.json()["detail"]

    allocated = await client.post(
        "/api/v1/classrooms/allocate", json={"grade_id": grade["id"]}, headers=admin_headers
    )
    classroom_b = allocated.json()
    assert classroom_b["name"] == "Grade 1-B"
    await enroll(client, admin_headers, grade["id"], classroom_b["id"], 3)
    assert (await _classroom(client, admin_headers, classroom_b["id"]))["current_count"] == 1


@pytest.mark.asyncio
async def test_count_matches_enrollments(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    classroom_id = grade["classrooms"][0]["id"]
    for seq in range(1, 6):
        await enroll(client, admin_headers, grade["id"], classroom_id, seq)

    classroom = await _classroom(client, admin_headers, classroom_id)
    roster = await client.get(f"/api/v1/students/classroom/{classroom_id}", headers=admin_headers)
    assert classroom["current_count"] == 5 == len(roster.json())
    assert [s["full_name"] for s in roster.json()] == sorted(s["full_name"] for s in roster.json())


@pytest.mark.asyncio
async def test_create_student_details(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    classroom_id = grade["classrooms"][0]["id"]
    response = await client.post(
        "/api/v1/students",
        json=student_payload(grade["id"], classroom_id, 1, photo="/uploads/photos/s1.jpg"),
        headers=admin_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["admission_no"] == "SEC/2024/0001"
    assert data["grade"]["name"] == "Grade 1"
    assert data["classroom"]["name"] == "Grade 1-A"
    assert data["photo"] == "photos/s1.jpg"
    assert data["photo_url"] == "/uploads/photos/s1.jpg"
    assert data["parent"]["relationship"] == "mother"
    assert data["parent"]["signature_date"] == date.today().isoformat()
    assert data["status"] == "active"

    fees = await client.get(f"/api/v1/fees/student/{data['id']}", headers=admin_headers)
    assert fees.status_code == 200
    body = fees.json()
    assert len(body["fees"]) == 1
    fee = body["fees"][0]
    assert fee["status"] == "outstanding"
    assert fee["description"] == "Registration fee"
    assert fee["billing_type"] == "term"
    assert Decimal(fee["amount"]) == Decimal("5000")
    assert body["summary"]["outstanding_count"] == 1

    detail = await client.get(f"/api/v1/students/{data['id']}", headers=admin_headers)
    assert detail.status_code == 200
    assert len(detail.json()["fees"]) == 1


@pytest.mark.asyncio
async def test_classroom_from_other_grade_is_refused(client: AsyncClient, admin_headers) -> None:
    grade_1 = await create_grade(client, admin_headers, name="Grade 1")
    grade_2 = await create_grade(client, admin_headers, name="Grade 2")
    response = await client.post(
        "/api/v1/students",
        json=student_payload(grade_1["id"], grade_2["classrooms"][0]["id"], 1),
        headers=admin_headers,
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Classroom does not belong to selected grade"
    assert (await _classroom(client, admin_headers, grade_2["classrooms"][0]["id"]))["current_count"] == 0


@pytest.mark.asyncio
async def test_admission_number_rules(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    classroom_id = grade["classrooms"][0]["id"]

    bad = await client.post(
        "/api/v1/students",
        json=student_payload(grade["id"], classroom_id, 1, admission_no="2024-1"),
        headers=admin_headers,
    )
    assert bad.status_code == 422

    await enroll(client, admin_headers, grade["id"], classroom_id, 1)
    duplicate = await client.post(
        "/api/v1/students", json=student_payload(grade["id"], classroom_id, 1), headers=admin_headers
    )
    assert duplicate.status_code == 409
    assert (await _classroom(client, admin_headers, classroom_id))["current_count"] == 1


@pytest.mark.asyncio
async def test_missing_required_fields(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    payload = student_payload(grade["id"], grade["classrooms"][0]["id"], 1)
    del payload["classroom_id"]
    del payload["parent"]["phone"]
    response = await client.post("/api/v1/students", json=payload, headers=admin_headers)
    assert response.status_code == 422
    locations = [tuple(err["loc"]) for err in response.json()["detail"]]
    assert ("body", "classroom_id") in locations
    assert ("body", "parent", "phone") in locations


@pytest.mark.asyncio
async def test_change_grade_moves_classroom(client: AsyncClient, admin_headers) -> None:
    grade_1 = await create_grade(client, admin_headers, name="Grade 1")
    grade_2 = await create_grade(client, admin_headers, name="Grade 2")
    old_classroom = grade_1["classrooms"][0]["id"]
    new_classroom = grade_2["classrooms"][0]["id"]
    student = await enroll(client, admin_headers, grade_1["id"], old_classroom, 1)

    missing = await client.put(
        f"/api/v1/students/{student['id']}", json={"grade_id": grade_2["id"]}, headers=admin_headers
    )
    assert missing.status_code == 422

    moved = await client.put(
        f"/api/v1/students/{student['id']}",
        json={"grade_id": grade_2["id"], "classroom_id": new_classroom, "full_name": "Renamed"},
        headers=admin_headers,
    )
    assert moved.status_code == 200
    data = moved.json()
    assert data["grade"]["name"] == "Grade 2"
    assert data["classroom"]["name"] == "Grade 2-A"
    assert data["full_name"] == "Renamed"
    assert (await _classroom(client, admin_headers, old_classroom))["current_count"] == 0
    assert (await _classroom(client, admin_headers, new_classroom))["current_count"] == 1


@pytest.mark.asyncio
async def test_change_classroom_within_grade(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    classroom_a = grade["classrooms"][0]["id"]
    classroom_b = (await client.post(f"/api/v1/grades/{grade['id']}/classrooms", headers=admin_headers)).json()["id"]
    other_grade = await create_grade(client, admin_headers, name="Grade 2")
    student = await enroll(client, admin_headers, grade["id"], classroom_a, 1)

    refused = await client.put(
        f"/api/v1/students/{student['id']}",
        json={"classroom_id": other_grade["classrooms"][0]["id"]},
        headers=admin_headers,
    )
    assert refused.status_code == 409

    moved = await client.put(
        f"/api/v1/students/{student['id']}", json={"classroom_id": classroom_b}, headers=admin_headers
    )
    assert moved.status_code == 200
    assert moved.json()["classroom"]["suffix"] == "B"
    assert (await _classroom(client, admin_headers, classroom_a))["current_count"] == 0
    assert (await _classroom(client, admin_headers, classroom_b))["current_count"] == 1


@pytest.mark.asyncio
async def test_delete_student_releases_seat_and_fees(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    classroom_id = grade["classrooms"][0]["id"]
    student = await enroll(client, admin_headers, grade["id"], classroom_id, 1)
    await enroll(client, admin_headers, grade["id"], classroom_id, 2)

    response = await client.delete(f"/api/v1/students/{student['id']}", headers=admin_headers)
    assert response.status_code == 204
    assert (await _classroom(client, admin_headers, classroom_id))["current_count"] == 1

    fees = await client.get(f"/api/v1/fees?student_id={student['id']}", headers=admin_headers)
    assert fees.json()["count"] == 0
    missing = await client.get(f"/api/v1/students/{student['id']}", headers=admin_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_list_students_search(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    classroom_id = grade["classrooms"][0]["id"]
    await enroll(client, admin_headers, grade["id"], classroom_id, 1)
    await enroll(client, admin_headers, grade["id"], classroom_id, 2)

    response = await client.get("/api/v1/students?search=0002", headers=admin_headers)
    assert response.status_code == 200
    assert [s["admission_no"] for s in response.json()] == ["SEC/2024/0002"]

    by_grade = await client.get(f"/api/v1/students?grade_id={grade['id']}&status=active", headers=admin_headers)
    assert len(by_grade.json()) == 2


@pytest.mark.asyncio
async def test_next_admission_no(client: AsyncClient, admin_headers) -> None:
    year = date.today().year
    empty = await client.get("/api/v1/students/next-admission-no", headers=admin_headers)
    assert empty.json()["admission_no"] == f"SEC/{year}/0001"

    grade = await create_grade(client, admin_headers)
    response = await client.post(
        "/api/v1/students",
        json=student_payload(grade["id"], grade["classrooms"][0]["id"], 1, admission_no=f"SEC/{year}/0007"),
        headers=admin_headers,
    )
    assert response.status_code == 201
    suggested = await client.get("/api/v1/students/next-admission-no", headers=admin_headers)
    assert suggested.json()["admission_no"] == f"SEC/{year}/0008"


@pytest.mark.asyncio
async def test_only_active_students_hold_seats(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers, max_capacity_per_class=1)
    classroom_id = grade["classrooms"][0]["id"]
    student = await enroll(client, admin_headers, grade["id"], classroom_id, 1)

    graduated = await client.put(
        f"/api/v1/students/{student['id']}", json={"status": "graduated"}, headers=admin_headers
    )
    assert graduated.status_code == 200
    assert (await _classroom(client, admin_headers, classroom_id))["current_count"] == 0

    recount = await client.post(f"/api/v1/classrooms/{classroom_id}/recount", headers=admin_headers)
    assert recount.json()["current_count"] == 0

    # the freed seat can be taken by someone else
    newcomer = await enroll(client, admin_headers, grade["id"], classroom_id, 2)
    back = await client.put(
        f"/api/v1/students/{student['id']}", json={"status": "active"}, headers=admin_headers
    )
    assert back.status_code == 409
    assert back.json()["detail"] == "Classroom is full"

    await client.delete(f"/api/v1/students/{newcomer['id']}", headers=admin_headers)
    back = await client.put(
        f"/api/v1/students/{student['id']}", json={"status": "active"}, headers=admin_headers
    )
    assert back.status_code == 200
    assert (await _classroom(client, admin_headers, classroom_id))["current_count"] == 1

    await client.put(f"/api/v1/students/{student['id']}", json={"status": "transferred"}, headers=admin_headers)
    deleted = await client.delete(f"/api/v1/students/{student['id']}", headers=admin_headers)
    assert deleted.status_code == 204
    assert (await _classroom(client, admin_headers, classroom_id))["current_count"] == 0


@pytest.mark.asyncio
async def test_inactive_enrollment_takes_no_seat(client: AsyncClient, admin_headers) -> None:
    grade = await create_grade(client, admin_headers)
    classroom_id = grade["classrooms"][0]["id"]
    response = await client.post(
        "/api/v1/students",
        json=student_payload(grade["id"], classroom_id, 1, status="inactive"),
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert (await _classroom(client, admin_headers, classroom_id))["current_count"] == 0

    recount = await client.post(f"/api/v1/classrooms/{classroom_id}/recount", headers=admin_headers)
    assert recount.json()["current_count"] == 0
