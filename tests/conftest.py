"""Shared fixtures.

Settings are read once at import, so the environment is prepared before any
``academy_admin`` module is imported. Every test that touches the database
gets a fresh schema in an on-disk SQLite file.
"""

import os
import sys
import tempfile
import logging

_DB_DIR = tempfile.mkdtemp(prefix="academy-admin-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR}/test.db"
os.environ["APP_ENV"] = "development"
os.environ["APP_SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_EMAILS"] = "boss@example.com"
os.environ["ACTIVE_SEMESTER_NAME"] = "Spring 2026"
os.environ["BACKUP_DIR"] = os.path.join(_DB_DIR, "backups")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from academy_admin.database import async_session_factory, engine  # noqa: E402
from academy_admin.models import Base, Role  # noqa: E402
from academy_admin.schemas.academy import AcademyCreate, LevelCreate, SemesterCreate  # noqa: E402
from academy_admin.services.academy_service import AcademyService  # noqa: E402
from academy_admin.services.semester_service import SemesterService  # noqa: E402
from academy_admin.utils.security import create_access_token  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _tests_log_to_stdout():
    """Send test logs to stdout so they show up under ``pytest -s``."""
    root = logging.getLogger()
    if not any(getattr(h, "stream", None) is sys.stdout for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        root.addHandler(handler)
    root.setLevel(os.getenv("TEST_LOG_LEVEL", "INFO").upper())


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def database(anyio_backend):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(database):
    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(database):
    from academy_admin.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


def auth_headers(role: Role | str = Role.ADMIN, email: str = "admin@example.com", name: str = "") -> dict:
    """Authorization header for a user with ``role``."""
    role_value = role.value if isinstance(role, Role) else role
    return {"Authorization": f"Bearer {create_access_token(email, role_value, name=name)}"}


@pytest.fixture
async def catalog(db):
    """Active semester with Korean Language (three levels) and Art Academy."""
    semester = await SemesterService().create_semester(db, SemesterCreate(name="Spring 2026", is_active=True))
    academies = AcademyService()
    korean = await academies.create_academy(
        db,
        semester,
        AcademyCreate(
            name="Korean Language",
            price=Decimal("150.00"),
            levels=[LevelCreate(name="Alphabet"), LevelCreate(name="Beginner"), LevelCreate(name="Conversation")],
        ),
    )
    art = await academies.create_academy(
        db, semester, AcademyCreate(name="Art Academy", price=Decimal("120.00"), display_order=1)
    )
    await db.commit()
    return {"semester": semester, "korean": korean, "art": art}
