import os
import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tortoise import Tortoise

TEST_DB_URL = "sqlite://:memory:"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ.pop("SMS_SECRET", None)  # never hit a real SMS gateway from tests
os.environ["RATE_LIMIT_ENABLED"] = "true"

from devicehub.core import db as db_module  # noqa: E402
from devicehub.core.roles import Role  # noqa: E402
from devicehub.core.ratelimit import limiter  # noqa: E402
from devicehub.core.security import create_access_token  # noqa: E402
from devicehub.main import app  # noqa: E402
from devicehub.models.user import User  # noqa: E402
from devicehub.repositories.memory import MemoryStore  # noqa: E402

db_module.DB_URL = TEST_DB_URL
db_module.TORTOISE_ORM["connections"]["default"] = TEST_DB_URL

_phone_seq = iter(range(9000000100, 9999999999))


def next_phone() -> str:
    return str(next(_phone_seq))


async def _init_test_db() -> None:
    """
    Initialize a clean in-memory SQLite database for every test.
    Ensures tables are recreated from scratch.
    """
    if Tortoise._inited:
        await Tortoise.close_connections()
    await Tortoise.init(config=db_module.TORTOISE_ORM)
    await Tortoise.generate_schemas()


@pytest_asyncio.fixture
async def db():
    """Fresh database without the HTTP client (for service tests on Tortoise)."""
    await _init_test_db()
    yield
    await Tortoise.close_connections()


@pytest_asyncio.fixture
async def client(db):
    """
    Provide an HTTPX AsyncClient bound to the FastAPI app with a fresh DB.
    Startup hooks are not run; the fixture owns the database lifecycle.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as async_client:
        yield async_client


@pytest_asyncio.fixture
async def create_user(db):
    """
    Factory fixture to create users of any role directly via ORM.
    """

    async def _create_user(role: Role = Role.CUSTOMER, name: str | None = None, phone: str | None = None) -> User:
        return await User.create(
            name=name or f"{role.value}_{uuid.uuid4().hex[:6]}",
            phone=phone or next_phone(),
            role=role,
        )

    return _create_user


@pytest.fixture
def auth_headers():
    """
    Helper fixture building Authorization headers for a user without the OTP round trip.
    """

    def _headers(user: User) -> dict[str, str]:
        role = user.role.value if isinstance(user.role, Role) else user.role
        token = create_access_token(str(user.id), role, phone=user.phone, name=user.name)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Start every test with empty per-IP request counters."""
    limiter.reset()
    yield


@pytest.fixture
def store() -> MemoryStore:
    """In-memory repositories for service unit tests."""
    return MemoryStore()
