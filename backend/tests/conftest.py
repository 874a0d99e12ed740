import os
import sys
from pathlib import Path
import pytest

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

# Test environment (applied before the cms modules are imported)
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-jwt-signing")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")
os.environ.setdefault("NEWSLETTER_STORAGE", "database")

# Put backend/ on sys.path so the 'cms' package resolves
repo_root = Path(__file__).resolve().parents[2]
backend_path = repo_root / "backend"
if str(backend_path) not in sys.path:
    sys.path.insert(0, str(backend_path))

from cms.main import app
from cms.database import Base
from cms.database import get_db as real_get_db
from cms.auth import service as auth_service
from cms.categories.models import Category
from cms.media.storage import MediaStorage, get_media_storage
from cms.users import service as user_service
from cms.users.models import UserRole
from cms.users.schema import UserCreate

PASSWORD = "password123"


@pytest.fixture()
async def test_engine():
    # in-memory SQLite; StaticPool keeps one connection so every session sees the same database
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
async def db(test_engine):
    async_session = sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session


@pytest.fixture()
def media_root(tmp_path):
    return tmp_path / "media"


@pytest.fixture(autouse=True)
async def override_dependencies(db, media_root):
    async def _get_db():
        yield db

    def _get_media_storage():
        return MediaStorage(
            root=media_root,
            url_prefix="/media",
            max_bytes=1024,
            allowed_types=["image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"],
        )

    app.dependency_overrides[real_get_db] = _get_db
    app.dependency_overrides[get_media_storage] = _get_media_storage
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def make_user(db, username: str, role: UserRole = UserRole.VIEWER, password: str = PASSWORD):
    return await user_service.create_user(UserCreate(username=username, password=password, role=role), db)


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {auth_service.create_access_token(user)}"}


@pytest.fixture()
async def admin_user(db):
    return await make_user(db, "admin", UserRole.ADMIN)


@pytest.fixture()
async def editor_user(db):
    return await make_user(db, "editor", UserRole.EDITOR)


@pytest.fixture()
async def viewer_user(db):
    return await make_user(db, "viewer", UserRole.VIEWER)


@pytest.fixture()
def admin_headers(admin_user):
    return bearer(admin_user)


@pytest.fixture()
def editor_headers(editor_user):
    return bearer(editor_user)


@pytest.fixture()
def viewer_headers(viewer_user):
    return bearer(viewer_user)


@pytest.fixture()
async def category(db):
    item = Category(name="Zprávy", slug="zpravy", display_order=1)
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item
