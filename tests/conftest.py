import os
import uuid
from typing import AsyncGenerator, Dict

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.core.models  # noqa: F401  (registers models on Base)
from app.auth.security import create_access_token
from app.core.enums import Role
from app.db.session import Base, get_db
from app.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
TEACHER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; overrides the FastAPI get_db dependency."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def auth_headers(role: Role, user_id: uuid.UUID) -> Dict[str, str]:
    token = create_access_token(subject={"sub": str(user_id), "role": role.value})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers() -> Dict[str, str]:
    return auth_headers(Role.ADMIN, ADMIN_ID)


@pytest.fixture()
def teacher_headers() -> Dict[str, str]:
    return auth_headers(Role.TEACHER, TEACHER_ID)


async def create_grade(client: AsyncClient, headers: Dict[str, str], name: str = "Grade 1", **extra) -> Dict:
    response = await client.post("/api/v1/grades", json={"name": name, **extra}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def student_payload(grade_id: str, classroom_id: str, seq: int, **extra) -> Dict:
    payload = {
        "admission_no": f"SEC/2024/{seq:04d}",
        "full_name": f"Student {seq:04d}",
        "gender": "female",
        "date_of_birth": "2016-03-14",
        "grade_id": grade_id,
        "classroom_id": classroom_id,
        "parent": {
            "full_name": f"Parent {seq:04d}",
            "relationship": "mother",
            "phone": "+255700000000",
            "email": "parent@example.com",
        },
        "initial_fee": {"amount": "5000", "billing_type": "term"},
    }
    payload.update(extra)
    return payload


async def enroll(client: AsyncClient, headers: Dict[str, str], grade_id: str, classroom_id: str, seq: int) -> Dict:
    response = await client.post(
        "/api/v1/students", json=student_payload(grade_id, classroom_id, seq), headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()
