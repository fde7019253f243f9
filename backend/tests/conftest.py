"""
E-Service Portal - Test Configuration and Fixtures
"""
import itertools
import os
import tempfile
from typing import AsyncGenerator, Optional

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment
_tmp_root = tempfile.mkdtemp(prefix="eservice-tests-")
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'testing'
os.environ['DEBUG'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['SEED_ON_STARTUP'] = 'false'
os.environ['LOG_FILE'] = ''
os.environ['FILEDATA_PATH'] = os.path.join(_tmp_root, 'filedata')
os.environ['LOCALES_PATH'] = os.path.join(_tmp_root, 'locales')
os.environ['HAHU_API_URL'] = 'https://hahu.test/api'
os.environ['HAHU_API_SECRET'] = 'test-secret'
os.environ['HAHU_API_DEVICE'] = 'test-device'

from eservice.main import app
from eservice.core.database import Base, get_db
from eservice.core.security import get_password_hash, create_access_token
from eservice.db.seed_data import seed_permissions_and_roles
from eservice.models.office import Office, Staff
from eservice.models.service import Service, ServiceStaffAssignment
from eservice.models.user import User, Role, RoleName
from eservice.services.sms_service import HahuSMSClient, get_sms_client

fake = Faker()
_phone_counter = itertools.count(10000000)

TEST_PASSWORD = 'password123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)


@event.listens_for(test_engine.sync_engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def unique_phone() -> str:
    return f"+2519{next(_phone_counter)}"


def auth_headers_for(user: User) -> dict:
    token = create_access_token({'sub': str(user.id), 'role': user.role_name})
    return {'Authorization': f'Bearer {token}'}


# ==================== Database ====================

@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema with seeded permissions and roles for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        await seed_permissions_and_roles(session)
        await session.commit()
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ==================== SMS gateway ====================

class FakeHahuGateway:
    """
    httpx MockTransport standing in for the Hahu API.

    Records every call; `responses` maps a path suffix to (status, json).
    """

    def __init__(self):
        self.calls = []
        self.responses = {
            '/send/sms': (200, {'status': 200, 'message': 'SMS queued'}),
            '/send/otp': (200, {'status': 200, 'otp': '482913', 'message': 'OTP sent'}),
            '/get/otp': (200, {'status': 200, 'message': 'OTP has been verified!'}),
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        for suffix, (status_code, body) in self.responses.items():
            if request.url.path.endswith(suffix):
                return httpx.Response(status_code, json=body)
        return httpx.Response(404, json={'message': 'not found'})

    def client(self) -> HahuSMSClient:
        return HahuSMSClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def sms_gateway() -> FakeHahuGateway:
    return FakeHahuGateway()


# ==================== HTTP client ====================

@pytest.fixture
async def client(db_session: AsyncSession, sms_gateway: FakeHahuGateway) -> AsyncGenerator[AsyncClient, None]:
    """Test client; every request gets its own session, committed like get_db does"""
    async def override_get_db():
        async with TestSessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sms_client] = sms_gateway.client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== Data factories ====================

async def create_user(
    db: AsyncSession,
    role_name: RoleName,
    office: Optional[Office] = None,
    password: str = TEST_PASSWORD,
    is_active: bool = True,
) -> User:
    result = await db.execute(
        select(Role).where(Role.name == role_name.value, Role.office_id.is_(None))
    )
    role = result.scalar_one()

    user = User(
        username=f"{fake.user_name()}_{next(_phone_counter)}",
        phone_number=unique_phone(),
        password_hash=get_password_hash(password),
        role=role,
        is_active=is_active,
        phone_verified=True,
        staff_records=[],
    )
    db.add(user)
    if office is not None:
        db.add(Staff(user=user, office=office))
    await db.commit()
    return user


async def create_office(db: AsyncSession, **overrides) -> Office:
    office = Office(
        name=overrides.pop('name', f"{fake.city()} Office"),
        room_number=overrides.pop('room_number', str(fake.random_int(1, 400))),
        address=overrides.pop('address', fake.street_address()),
        subdomain=overrides.pop('subdomain', f"office-{next(_phone_counter)}"),
        status=overrides.pop('status', True),
        **overrides,
    )
    db.add(office)
    await db.commit()
    return office


@pytest.fixture
async def office(db_session: AsyncSession) -> Office:
    return await create_office(db_session, name="Addis Kifle Ketema", subdomain="addis")


@pytest.fixture
async def other_office(db_session: AsyncSession) -> Office:
    return await create_office(db_session, name="Bahir Dar Branch", subdomain="bahir-dar")


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, RoleName.ADMIN)


@pytest.fixture
async def manager_user(db_session: AsyncSession, office: Office) -> User:
    return await create_user(db_session, RoleName.MANAGER, office=office)


@pytest.fixture
async def staff_user(db_session: AsyncSession, office: Office) -> User:
    return await create_user(db_session, RoleName.STAFF, office=office)


@pytest.fixture
async def customer_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, RoleName.CUSTOMER)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def manager_headers(manager_user: User) -> dict:
    return auth_headers_for(manager_user)


@pytest.fixture
def staff_headers(staff_user: User) -> dict:
    return auth_headers_for(staff_user)


@pytest.fixture
def customer_headers(customer_user: User) -> dict:
    return auth_headers_for(customer_user)


@pytest.fixture
async def service(db_session: AsyncSession, office: Office, staff_user: User) -> Service:
    """Service in `office` with `staff_user` assigned to it"""
    service = Service(
        name="Birth Certificate",
        description="Issue a birth certificate",
        time_to_take="3 days",
        office=office,
        requirements=[],
        service_fors=[],
        staff_assignments=[ServiceStaffAssignment(staff=staff_user.staff_records[0])],
    )
    db_session.add(service)
    await db_session.commit()
    return service
