import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from contactbook.core.db import get_db, init_models
from contactbook.db.models import User
from contactbook.db.repositories import SqlAlchemyStore
from contactbook.domains.crud.services import RequestContext
from contactbook.domains.identity.entities import Actor, Role
from contactbook.main import app

PASSWORD = "Secret123"


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session):
    """Создает пользователя напрямую в хранилище и возвращает Actor"""
    store = SqlAlchemyStore(User, session)
    counter = {"n": 0}

    async def _make(role: Role = Role.USER) -> Actor:
        counter["n"] += 1
        n = counter["n"]
        user = await store.create({
            "email": f"user{n}@example.com",
            "username": f"user{n}",
            "password_hash": "not-a-real-hash",
            "role": role.value,
        })
        return Actor(id=user.id, role=role)

    return _make


@pytest.fixture
def ctx():
    def _ctx(actor=None) -> RequestContext:
        return RequestContext(actor=actor)
    return _ctx


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def register(client):
    """Регистрирует пользователя через API; возвращает (user, headers)"""
    counter = {"n": 0}

    async def _register(name: str = None):
        counter["n"] += 1
        name = name or f"member{counter['n']}"
        response = await client.post("/auth/register", json={
            "email": f"{name}@example.com",
            "username": name,
            "password": PASSWORD,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        headers = {"Authorization": f"Bearer {body['tokens']['access_token']}"}
        return body["user"], headers

    return _register
