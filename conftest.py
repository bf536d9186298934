import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from eduplatform.database import Base, get_db, get_session_factory
from eduplatform.main import app
from eduplatform.models.catalog import Course, Subject
from eduplatform.models.user import User, UserRole
from eduplatform.security import get_current_user_id


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def instructor(db):
    user = User(email="instructor@example.com", full_name="Asha Rao", role=UserRole.INSTRUCTOR.value)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def student(db):
    user = User(email="student@example.com", full_name="Student One", role=UserRole.STUDENT.value)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def course(db):
    course = Course(name="JEE Main", slug="jee-main")
    db.add(course)
    await db.commit()
    return course


@pytest.fixture
async def physics(db, course):
    subject = Subject(course_id=course.id, name="Physics")
    db.add(subject)
    await db.commit()
    return subject


@pytest.fixture
async def client(session_factory, instructor):
    """API client logged in as the instructor; set ``client.user["id"]`` to switch users."""
    current = {"id": instructor.id}

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_current_user_id] = lambda: current["id"]

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        ac.user = current
        yield ac

    app.dependency_overrides.clear()
