import uuid

import pytest
from httpx import AsyncClient
from jose import jwt

from app.auth.rbac import permissions_for_role
from app.auth.security import create_access_token
from app.core.enums import Role

from conftest import auth_headers


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client: AsyncClient) -> None:
    response = await client.get("/api/v1/students")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_token_signed_with_other_key_is_rejected(client: AsyncClient) -> None:
    token = jwt.encode({"sub": str(uuid.uuid4()), "role": "admin"}, "not-the-key", algorithm="HS256")
    response = await client.get("/api/v1/grades", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_role_is_rejected(client: AsyncClient) -> None:
    token = create_access_token(subject={"sub": str(uuid.uuid4()), "role": "janitor"})
    response = await client.get("/api/v1/grades", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_expired_token_is_rejected(client: AsyncClient) -> None:
    token = create_access_token(subject={"sub": str(uuid.uuid4()), "role": "admin"}, expires_minutes=-1)
    response = await client.get("/api/v1/grades", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_support_staff_reads_but_cannot_write(client: AsyncClient) -> None:
    headers = auth_headers(Role.SUPPORT_STAFF, uuid.uuid4())
    read = await client.get("/api/v1/grades", headers=headers)
    assert read.status_code == 200
    assert read.json() == []

    write = await client.post("/api/v1/grades", json={"name": "Grade 9"}, headers=headers)
    assert write.status_code == 403
    assert write.json()["detail"] == "Role 'support_staff' is not authorized to create grades"


@pytest.mark.asyncio
async def test_head_teacher_cannot_delete_students(client: AsyncClient) -> None:
    headers = auth_headers(Role.HEAD_TEACHER, uuid.uuid4())
    response = await client.delete(f"/api/v1/students/{uuid.uuid4()}", headers=headers)
    assert response.status_code == 403


def test_only_admin_deletes() -> None:
    for role in (Role.HEAD_TEACHER, Role.TEACHER, Role.SUPPORT_STAFF):
        for module, actions in permissions_for_role(role).items():
            assert not actions.get("delete", False), f"{role.value} may delete {module}"
    assert permissions_for_role(Role.TEACHER)["attendance"] == {"create": True, "read": True}
