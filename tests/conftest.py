# tests/conftest.py
import os
import tempfile

# Must be set before the app modules read their settings
_TMP_DIR = tempfile.mkdtemp(prefix="sharebook-tests-")
os.environ["SHAREBOOK_DATABASE_URL"] = "sqlite+aiosqlite:///" + os.path.join(_TMP_DIR, "app.db")
os.environ["SHAREBOOK_SMTP_HOST"] = ""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import init_db
from models import Book, Profile, User
from services.donation import DonationService
from services.notifications import Notifier


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db(engine):
    session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    """A notifier that records events instead of sending emails."""
    notifier = MagicMock(spec=Notifier)
    notifier.notify_book_requested = AsyncMock()
    notifier.notify_book_donated = AsyncMock()
    return notifier


@pytest.fixture
def service(db, notifier):
    return DonationService(db, notifier)


async def add_user(db, name: str, profile: Profile = Profile.User) -> User:
    user = User(name=name, email=f"{name.lower()}@example.com", profile=profile)
    db.add(user)
    await db.commit()
    return user


async def add_book(db, donor: User, title: str = "Dom Casmurro", approved: bool = False, **fields) -> Book:
    book = Book(
        title=title,
        author=fields.pop("author", "Machado de Assis"),
        category=fields.pop("category", "Novel"),
        slug=fields.pop("slug", title.lower().replace(" ", "-")),
        user_id=donor.id,
        approved=approved,
        available=True,
        **fields,
    )
    db.add(book)
    await db.commit()
    return book


@pytest.fixture
async def admin(db):
    return await add_user(db, "Admin", Profile.Administrator)


@pytest.fixture
async def donor(db):
    return await add_user(db, "Donor")


@pytest.fixture
async def book(db, donor):
    return await add_book(db, donor)
