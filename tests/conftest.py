import os

os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("SECRET_KEY", "test-secret")

from decimal import Decimal

import httpx
import pytest

from plantry.shared.utils import create_access_token, get_db_engine, get_password_hash, get_sessionmaker
from plantry.app.main import app
from plantry.app.models import Base, CartItemDB, ProductDB, UserDB

PASSWORD = "Password123"


@pytest.fixture
async def engine(tmp_path):
    engine = get_db_engine(f"sqlite+aiosqlite:///{tmp_path / 'plantry.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_sessionmaker(engine)


@pytest.fixture
async def client(session_factory):
    app.state.sessionmaker = session_factory
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


async def _create_user(session_factory, email, role="customer"):
    async with session_factory() as session:
        user = UserDB(
            email=email,
            password_hash=get_password_hash(PASSWORD),
            full_name="Test User",
            phone="(415) 555-0100",
            role=role,
        )
        session.add(user)
        await session.commit()
        return user


def _headers(user):
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def customer(session_factory):
    return await _create_user(session_factory, "customer@plantry.com")


@pytest.fixture
async def other_customer(session_factory):
    return await _create_user(session_factory, "other@plantry.com")


@pytest.fixture
async def admin_user(session_factory):
    return await _create_user(session_factory, "admin@plantry.com", role="admin")


@pytest.fixture
def auth_headers(customer):
    return _headers(customer)


@pytest.fixture
def other_headers(other_customer):
    return _headers(other_customer)


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
async def products(session_factory):
    """Catalog with ids 1-3 available and id 4 withdrawn."""
    async with session_factory() as session:
        items = [
            ProductDB(name="Morning Ritual Green", category="juices", price=Decimal("14.00"), stock=40, available=True),
            ProductDB(name="Ancient Grain Bowl", category="bowls", price=Decimal("22.00"), stock=35, available=True),
            ProductDB(name="Stone-Ground Almond Butter", category="pantry", price=Decimal("18.00"), stock=50, available=True),
            ProductDB(name="Seasonal Special", category="juices", price=Decimal("9.99"), stock=0, available=False),
        ]
        session.add_all(items)
        await session.commit()
        return items


@pytest.fixture
def fill_cart(session_factory):
    async def _fill(user, lines):
        async with session_factory() as session:
            session.add_all([
                CartItemDB(user_id=user.id, product_id=product_id, quantity=quantity)
                for product_id, quantity in lines
            ])
            await session.commit()
    return _fill
