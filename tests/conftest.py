"""
Shared fixtures.

Every test that touches the repositories gets a fresh in-memory SQLite
database bound to the module-level session factory.
"""

import pytest
import pytest_asyncio

from src.storage.database import configure_database, init_db
from src.storage.models import Base
from src.storage.user_repository import UserRepository
from tests.helpers import make_message


@pytest.fixture
def db():
    engine = configure_database("sqlite://")
    init_db()
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest_asyncio.fixture
async def user(db):
    return await UserRepository.create_user("owner@example.com", "Shop Owner")


@pytest_asyncio.fixture
async def verified_user(user):
    await UserRepository.save_mailbox_settings(
        user["id"],
        provider="titan",
        email="support@example.com",
        password="app-password",
        verified=True,
    )
    return user


@pytest.fixture
def inquiry():
    return make_message()
