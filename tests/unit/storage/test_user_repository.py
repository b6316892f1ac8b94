"""
Unit tests for the user repository.

Run against an in-memory SQLite database.
"""

import pytest

from src.storage.models import MailboxSettings
from src.storage.database import get_db_session
from src.storage.user_repository import UserRepository


@pytest.mark.asyncio
class TestUserRepository:

    async def test_create_and_get_user(self, db):
        created = await UserRepository.create_user("new@example.com", "New User")

        fetched = await UserRepository.get_user(created["id"])
        assert fetched["email"] == "new@example.com"
        assert fetched["automation_enabled"] is False
        assert fetched["automation_interval"] == 5

    async def test_duplicate_email_rejected(self, user):
        with pytest.raises(ValueError, match="already exists"):
            await UserRepository.create_user("owner@example.com")

    async def test_get_unknown_user_returns_none(self, db):
        assert await UserRepository.get_user("missing") is None

    async def test_set_automation_persists_flag_and_interval(self, user):
        updated = await UserRepository.set_automation(user["id"], True, 10)

        assert updated["automation_enabled"] is True
        assert updated["automation_interval"] == 10
        assert updated["automation_last_started"] is not None

        enabled = await UserRepository.list_automation_enabled()
        assert [u["id"] for u in enabled] == [user["id"]]

        await UserRepository.set_automation(user["id"], False)
        assert await UserRepository.list_automation_enabled() == []
        assert (await UserRepository.get_user(user["id"]))["automation_interval"] == 10

    async def test_set_automation_unknown_user(self, db):
        with pytest.raises(LookupError):
            await UserRepository.set_automation("missing", True)

    async def test_mailbox_secrets_encrypted_at_rest(self, user):
        saved = await UserRepository.save_mailbox_settings(
            user["id"], provider="gmail", email="support@example.com",
            password="app-password", verified=True
        )
        assert "password" not in saved

        with get_db_session() as session:
            row = session.query(MailboxSettings).filter(MailboxSettings.owner == user["id"]).one()
            assert row.password != "app-password"

        settings = await UserRepository.get_mailbox_settings(user["id"])
        assert settings["password"] == "app-password"
        assert settings["access_token"] is None
        assert settings["verified"] is True

    async def test_save_mailbox_settings_replaces_existing(self, verified_user):
        await UserRepository.save_mailbox_settings(
            verified_user["id"], provider="outlook", email="help@example.com", password="other"
        )

        settings = await UserRepository.get_mailbox_settings(verified_user["id"], include_secrets=False)
        assert settings["provider"] == "outlook"
        assert settings["verified"] is False
        assert "password" not in settings
