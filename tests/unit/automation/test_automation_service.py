"""
Unit tests for the automation service.

Monitor, ingestor and transport are mocked; records live in an in-memory
database.
"""

from datetime import datetime

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.automation.service import AutomationService, validate_feedback
from src.errors import InvalidRequestError, NotFoundError
from src.email_processing.knowledge.cache import KnowledgeBaseCache
from src.email_processing.knowledge.store import KnowledgeStore
from src.email_processing.models import FeedbackType
from src.storage.automation_repository import AutomatedEmailRepository, KnowledgeRepository
from src.storage.user_repository import UserRepository


@pytest.fixture
def service():
    monitor = MagicMock()
    monitor.start = AsyncMock(return_value={"running": True})
    monitor.stop = AsyncMock(return_value=True)
    monitor.status = MagicMock(return_value={"owner": "u", "running": False})
    ingestor = MagicMock()
    ingestor.ingest = AsyncMock()
    ingestor.metrics = MagicMock(return_value={"training_status": "idle"})
    embedder = MagicMock()
    embedder.embed = AsyncMock(return_value=[1.0, 0.0])
    transport = MagicMock()
    transport.send_reply = AsyncMock(return_value={"message_id": "<sent@example.com>"})
    return AutomationService(monitor, ingestor, KnowledgeStore(KnowledgeBaseCache(), embedder), transport)


async def _seed_knowledge(owner, count=3):
    for i in range(count):
        await KnowledgeRepository.create(owner, f"Fact {i}")


async def _held_email(owner, message_id="<held@example.com>"):
    return await AutomatedEmailRepository.create(
        owner, message_id,
        subject="SSO on Pro?",
        sender="Jane <jane@example.com>",
        received_date=datetime(2025, 1, 1),
        body="Does Pro include SSO?",
        category="product_inquiry",
        response_generated=True,
        response_text="Draft reply",
        needs_human_review=True,
    )


class TestValidateFeedback:

    def test_valid_types(self):
        assert validate_feedback("approve", 5, None, []) == FeedbackType.APPROVE
        assert validate_feedback("edit", None, "Better", ["tone"]) == FeedbackType.EDIT

    @pytest.mark.parametrize("args, message", [
        (("like", 3, None, []), "Invalid feedback type"),
        (("approve", None, None, []), "Rating is required"),
        (("reject", 0, None, []), "between 1 and 5"),
        (("approve", 6, None, []), "between 1 and 5"),
        (("approve", True, None, []), "between 1 and 5"),
        (("edit", None, "  ", []), "Improved response is required"),
        (("reject", 2, None, ["tone", "vibes"]), "Invalid improvement areas: vibes"),
    ])
    def test_invalid(self, args, message):
        with pytest.raises(InvalidRequestError, match=message):
            validate_feedback(*args)


@pytest.mark.asyncio
class TestStartStop:

    async def test_requires_verified_mailbox(self, service, user):
        with pytest.raises(ValueError, match="not set up or verified"):
            await service.start_automation(user["id"])

        await UserRepository.save_mailbox_settings(user["id"], "titan", "s@example.com", password="pw")
        with pytest.raises(ValueError, match="not set up or verified"):
            await service.start_automation(user["id"])

    async def test_requires_minimum_knowledge(self, service, verified_user):
        await _seed_knowledge(verified_user["id"], 2)

        with pytest.raises(ValueError, match="at least 3 entries"):
            await service.start_automation(verified_user["id"])
        service.monitor.start.assert_not_awaited()

    async def test_start_persists_flag_and_starts_job(self, service, verified_user):
        await _seed_knowledge(verified_user["id"])

        result = await service.start_automation(verified_user["id"])

        assert result["status"] == "running"
        assert result["interval_minutes"] == 5
        service.monitor.start.assert_awaited_once_with(verified_user["id"], 5)
        assert (await UserRepository.get_user(verified_user["id"]))["automation_enabled"] is True

    async def test_stop_clears_flag(self, service, verified_user):
        await _seed_knowledge(verified_user["id"])
        await service.start_automation(verified_user["id"], 10)

        result = await service.stop_automation(verified_user["id"])

        assert result["status"] == "stopped"
        service.monitor.stop.assert_awaited_once_with(verified_user["id"])
        user = await UserRepository.get_user(verified_user["id"])
        assert user["automation_enabled"] is False
        assert user["automation_interval"] == 10

    async def test_status(self, service, verified_user):
        await _seed_knowledge(verified_user["id"])
        await service.start_automation(verified_user["id"], 10)
        await _held_email(verified_user["id"])

        status = await service.get_status(verified_user["id"])

        assert status["status"] == "running"
        assert status["settings"]["interval"] == 10
        assert status["settings"]["last_started"] is not None
        assert status["stats"]["needs_review"] == 1

    async def test_status_unknown_user(self, service, db):
        with pytest.raises(LookupError):
            await service.get_status("missing")


@pytest.mark.asyncio
class TestRecords:

    async def test_history_pagination(self, service, user):
        for i in range(3):
            await _held_email(user["id"], f"<{i}@example.com>")

        history = await service.get_history(user["id"], page=2, limit=2)

        assert len(history["data"]) == 1
        assert history["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}

    async def test_get_email_scoped_to_owner(self, service, user):
        record = await _held_email(user["id"])

        assert (await service.get_email(user["id"], record["id"]))["id"] == record["id"]
        with pytest.raises(NotFoundError, match="Email not found"):
            await service.get_email("someone-else", record["id"])

    async def test_send_held_response(self, service, user):
        record = await _held_email(user["id"])

        updated = await service.send_held_response(user["id"], record["id"], "Final reply")

        assert updated["response_sent"] is True
        assert updated["needs_human_review"] is False
        assert updated["response_text"] == "Final reply"
        reply = service.transport.send_reply.await_args.args[0]
        assert reply["subject"] == "Re: SSO on Pro?"
        assert reply["to"] == "Jane <jane@example.com>"
        assert reply["original_message_id"] == "<held@example.com>"

        with pytest.raises(InvalidRequestError, match="already sent"):
            await service.send_held_response(user["id"], record["id"], "Again")

    async def test_send_held_response_requires_text(self, service, user):
        record = await _held_email(user["id"])

        with pytest.raises(ValueError):
            await service.send_held_response(user["id"], record["id"], "  ")
        service.transport.send_reply.assert_not_awaited()


@pytest.mark.asyncio
class TestFeedback:

    async def test_edit_replaces_response_and_queues_example(self, service, user):
        record = await _held_email(user["id"])

        feedback = await service.submit_feedback(
            user["id"], record["id"], "edit", improved_response="Yes, SSO is in Pro.",
            improvements=["completeness"]
        )

        assert feedback["original_response"] == "Draft reply"
        assert feedback["improved_response"] == "Yes, SSO is in Pro."
        updated = await service.get_email(user["id"], record["id"])
        assert updated["response_text"] == "Yes, SSO is in Pro."
        assert updated["needs_human_review"] is False
        assert updated["metadata"]["human_edited"] is True

        queued = service.ingestor.ingest.await_args.args[0]
        assert queued["id"] == feedback["id"]
        assert queued["automated_email"]["body"] == "Does Pro include SSO?"

    async def test_approve_keeps_record(self, service, user):
        record = await _held_email(user["id"])

        feedback = await service.submit_feedback(user["id"], record["id"], "approve", rating=5)

        assert feedback["improved_response"] == "Draft reply"
        assert (await service.get_email(user["id"], record["id"]))["needs_human_review"] is True

    async def test_invalid_feedback_not_stored(self, service, user):
        record = await _held_email(user["id"])

        with pytest.raises(ValueError):
            await service.submit_feedback(user["id"], record["id"], "approve")

        assert await service.get_feedback_history(user["id"]) == []
        service.ingestor.ingest.assert_not_awaited()

    async def test_feedback_for_missing_email(self, service, user):
        with pytest.raises(LookupError):
            await service.submit_feedback(user["id"], "missing", "approve", rating=3)

    async def test_feedback_stats_include_training(self, service, user):
        record = await _held_email(user["id"])
        await service.submit_feedback(user["id"], record["id"], "reject", rating=2, improvements=["tone"])

        stats = await service.get_feedback_stats(user["id"])

        assert stats["stats"]["total"] == 1
        assert stats["stats"]["improvements"] == {"tone": 1}
        assert stats["training"] == {"training_status": "idle"}


@pytest.mark.asyncio
class TestKnowledge:

    async def test_add_and_delete(self, service, user):
        chunk = await service.add_knowledge(user["id"], "Pro includes SSO", category="Plans")

        assert chunk["category"] == "Plans"
        await service.delete_knowledge(user["id"], chunk["id"])
        with pytest.raises(LookupError):
            await service.delete_knowledge(user["id"], chunk["id"])
