import os
import random
import string

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# ------------------------------------------------------------------
# TEST SETTINGS
# Must be set BEFORE importing app.main so config.py / database.py
# build the engine against the throwaway SQLite file.
# ------------------------------------------------------------------
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test_portal.db"
os.environ["SECRET_KEY"] = "test-secret-key-change-me"
os.environ["DB_SSL"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENV"] = "test"

from app.main import app  # noqa: E402
from app.core.database import AsyncSessionLocal, drop_db, init_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.models.user import UserRole  # noqa: E402
from app.services.auth_service import create_user  # noqa: E402

DEFAULT_PASSWORD = "password123"


def random_str(prefix=""):
    return f"{prefix}{''.join(random.choices(string.ascii_lowercase + string.digits, k=6))}"


def auth_headers(user):
    token = create_access_token(subject=str(user.id))
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def db():
    # Fresh schema per test
    await drop_db()
    await init_db()
    yield


@pytest_asyncio.fixture
async def client(db):
    # ASGITransport does not fire startup events; the db fixture builds the tables
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(db):
    """
    Factory that writes a user straight through the auth service.
    Extra keyword arguments (scopus_id, is_active, ...) are set afterwards.
    """
    async def _make(
        role=UserRole.Faculty,
        email=None,
        faculty_id=None,
        college="SRMIST RAMAPURAM",
        institute="Engineering and Technology",
        department="Computer Science",
        password=DEFAULT_PASSWORD,
        full_name=None,
        **extra,
    ):
        async with AsyncSessionLocal() as session:
            user = await create_user(
                session,
                full_name=full_name or random_str("User "),
                email=email or f"{random_str('user')}@srmist.edu.in",
                password=password,
                role=role,
                faculty_id=faculty_id or random_str("FAC-"),
                college=college,
                institute=institute,
                department=department,
            )
            if extra:
                for key, value in extra.items():
                    setattr(user, key, value)
                session.add(user)
                await session.commit()
                await session.refresh(user)
            return user

    return _make


@pytest_asyncio.fixture
async def super_admin(make_user):
    return await make_user(
        role=UserRole.SuperAdmin,
        email="root@srmist.edu.in",
        full_name="Root Admin",
    )


@pytest_asyncio.fixture
async def campus_admin(make_user):
    return await make_user(
        role=UserRole.CampusAdmin,
        email="campus@srmist.edu.in",
        faculty_id="CA-0001",
        college="SRMIST RAMAPURAM",
        institute="Engineering and Technology",
        department="N/A",
        full_name="Campus Admin",
    )


@pytest.fixture
def headers_for():
    return auth_headers
