"""
Unit tests for the email pipeline.

Collaborators are mocked; records are written to an in-memory database.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.email_processing.base import mask_email
from src.email_processing.models import EmailCategory, QualityCheckResult
from src.email_processing.processor import EmailProcessor, reply_subject
from src.integrations.errors import TransportError
from src.integrations.mail.message import unparseable_message
from src.storage.automation_repository import AutomatedEmailRepository
from src.storage.user_repository import UserRepository


def _processor(category=EmailCategory.PRODUCT_INQUIRY,
               draft="Yes, SSO is included in Pro.",
               quality=None,
               send_error=None):
    classifier = MagicMock()
    classifier.classify = AsyncMock(return_value=category)
    query_generator = MagicMock()
    query_generator.generate = AsyncMock(return_value=["Does Pro include SSO?"])
    retriever = MagicMock()
    retriever.retrieve = AsyncMock(return_value="Information about: Does Pro include SSO?\nPro has SSO")
    writer = MagicMock()
    writer.generate = AsyncMock(return_value=draft)
    quality_gate = MagicMock()
    quality_gate.check = AsyncMock(return_value=quality or QualityCheckResult(sendable=True))
    transport = MagicMock()
    transport.send_reply = AsyncMock(return_value={"message_id": "<reply@example.com>"},
                                     side_effect=send_error)
    return EmailProcessor(classifier, query_generator, retriever, writer, quality_gate, transport)


@pytest.mark.parametrize("subject, expected", [
    ("SSO on Pro?", "Re: SSO on Pro?"),
    ("RE: SSO on Pro?", "RE: SSO on Pro?"),
    ("", "Re: "),
    (None, "Re: "),
])
def test_reply_subject(subject, expected):
    assert reply_subject(subject) == expected


def test_mask_email():
    assert mask_email("jane@example.com") == "j**e@e******.com"
    assert mask_email("jo@example.com") == "**@e******.com"
    assert mask_email("not-an-address") == "not-an-address"


@pytest.mark.asyncio
class TestEmailProcessor:

    async def test_product_inquiry_answered_with_context(self, user, inquiry):
        processor = _processor()

        record = await processor.process(inquiry, user["id"])

        assert record["category"] == "product_inquiry"
        assert record["response_generated"] is True
        assert record["response_sent"] is True
        assert record["needs_human_review"] is False
        assert record["response_text"] == "Yes, SSO is included in Pro."
        assert record["response_date"] is not None
        assert record["metadata"]["queries"] == ["Does Pro include SSO?"]
        assert record["metadata"]["sent_message_id"] == "<reply@example.com>"
        assert "processing_time" in record["metadata"]

        processor.retriever.retrieve.assert_awaited_once_with(["Does Pro include SSO?"], user["id"])
        assert processor.writer.generate.await_args.args[2].startswith("Information about:")
        reply = processor.transport.send_reply.await_args.args[0]
        assert reply == {
            "original_message_id": "<sso-1@example.com>",
            "to": "Jane Doe <jane@example.com>",
            "subject": "Re: SSO on Pro?",
            "text": "Yes, SSO is included in Pro.",
            "owner": user["id"],
        }

    async def test_complaint_answered_without_retrieval(self, user, inquiry):
        processor = _processor(category=EmailCategory.CUSTOMER_COMPLAINT)

        record = await processor.process(inquiry, user["id"])

        assert record["response_sent"] is True
        processor.query_generator.generate.assert_not_awaited()
        processor.retriever.retrieve.assert_not_awaited()
        assert processor.writer.generate.await_args.args[2] is None

    async def test_unrelated_recorded_without_reply(self, user, inquiry):
        processor = _processor(category=EmailCategory.UNRELATED)

        record = await processor.process(inquiry, user["id"])

        assert record["category"] == "unrelated"
        assert record["response_generated"] is False
        assert record["response_sent"] is False
        assert record["needs_human_review"] is False
        processor.writer.generate.assert_not_awaited()
        processor.transport.send_reply.assert_not_awaited()

    async def test_rejected_draft_held_for_review(self, user, inquiry):
        processor = _processor(quality=QualityCheckResult(sendable=False, feedback="Missing pricing"))

        record = await processor.process(inquiry, user["id"])

        assert record["response_generated"] is True
        assert record["response_sent"] is False
        assert record["needs_human_review"] is True
        assert record["response_text"] == "Yes, SSO is included in Pro."
        assert record["metadata"]["quality_feedback"] == "Missing pricing"
        processor.transport.send_reply.assert_not_awaited()

    async def test_failed_open_quality_check_annotated(self, user, inquiry):
        processor = _processor(quality=QualityCheckResult(
            sendable=True, feedback="Quality check unavailable; sent without review", failed_open=True
        ))

        record = await processor.process(inquiry, user["id"])

        assert record["response_sent"] is True
        assert record["metadata"]["quality_check_failed_open"] is True

    async def test_send_failure_holds_for_review(self, user, inquiry):
        processor = _processor(send_error=TransportError("SMTP auth failed"))

        record = await processor.process(inquiry, user["id"])

        assert record["category"] == "product_inquiry"
        assert record["response_sent"] is False
        assert record["needs_human_review"] is True
        assert "SMTP auth failed" in record["metadata"]["send_error"]

    async def test_downstream_error_recorded_as_unrelated_for_review(self, user, inquiry):
        processor = _processor()
        processor.retriever.retrieve.side_effect = RuntimeError("database is locked")

        record = await processor.process(inquiry, user["id"])

        assert record["category"] == "unrelated"
        assert record["needs_human_review"] is True
        assert record["response_sent"] is False
        assert record["metadata"]["error"] == "database is locked"
        assert record["metadata"]["classified_as"] == "product_inquiry"

    async def test_unparseable_message_recorded_for_review(self, user):
        processor = _processor()
        message = unparseable_message("INBOX:42", ValueError("Message has no Message-ID"))

        record = await processor.process(message, user["id"])

        assert record["message_id"] == "INBOX:42"
        assert record["category"] == "unrelated"
        assert record["needs_human_review"] is True
        assert record["response_generated"] is False
        assert record["metadata"]["error"] == "Message has no Message-ID"
        processor.classifier.classify.assert_not_awaited()
        processor.transport.send_reply.assert_not_awaited()

    async def test_already_processed_message_skipped(self, user, inquiry):
        processor = _processor()

        first = await processor.process(inquiry, user["id"])
        second = await processor.process(inquiry, user["id"])

        assert first is not None
        assert second is None
        processor.classifier.classify.assert_awaited_once()
        processor.transport.send_reply.assert_awaited_once()
        assert await AutomatedEmailRepository.count_for_owner(user["id"]) == 1

    async def test_same_message_id_for_different_owners(self, user, inquiry):
        other = await UserRepository.create_user("other@example.com")
        processor = _processor(category=EmailCategory.UNRELATED)

        assert await processor.process(inquiry, user["id"]) is not None
        assert await processor.process(inquiry, other["id"]) is not None
