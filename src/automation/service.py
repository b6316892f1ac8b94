"""
Automation Service

Application-level operations behind the automation and feedback routes:
starting and stopping a user's inbox automation, status and history views,
manual sending of held replies, knowledge-base writes and human feedback.

Errors follow the API mapping: InvalidRequestError for invalid input or
state, NotFoundError for missing records.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from src.config.analyzer_config import AUTOMATION_CONFIG
from src.errors import InvalidRequestError, NotFoundError
from src.automation.dataset import DatasetSink
from src.automation.feedback import FeedbackIngestor
from src.automation.monitor import InboxMonitor
from src.email_processing.handlers.writer import ResponseGenerator
from src.email_processing.knowledge.cache import KnowledgeBaseCache
from src.email_processing.knowledge.retriever import KnowledgeRetriever
from src.email_processing.knowledge.store import KnowledgeStore
from src.email_processing.models import FeedbackType, ImprovementArea
from src.email_processing.processor import EmailProcessor, reply_subject
from src.integrations.mail.transport import MailTransport
from src.integrations.providers import default_embedding_chain
from src.storage.automation_repository import (
    AutomatedEmailRepository,
    FeedbackRepository,
    page_count,
)
from src.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)


def validate_feedback(feedback_type: str,
                      rating: Optional[int],
                      improved_response: Optional[str],
                      improvements: Optional[List[str]]) -> FeedbackType:
    """
    Check a feedback submission.

    Raises:
        InvalidRequestError: For an unknown type or improvement area, a missing or
            out-of-range rating on approve/reject, or an edit without text
    """
    try:
        kind = FeedbackType(feedback_type)
    except ValueError:
        raise InvalidRequestError(f"Invalid feedback type: {feedback_type}")

    if rating is not None and (isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5):
        raise InvalidRequestError("Rating must be an integer between 1 and 5")
    if kind in (FeedbackType.APPROVE, FeedbackType.REJECT) and rating is None:
        raise InvalidRequestError(f"Rating is required for {kind.value} feedback")
    if kind == FeedbackType.EDIT and not (improved_response and improved_response.strip()):
        raise InvalidRequestError("Improved response is required for edit feedback")

    valid_areas = {area.value for area in ImprovementArea}
    unknown = [area for area in improvements or [] if area not in valid_areas]
    if unknown:
        raise InvalidRequestError(f"Invalid improvement areas: {', '.join(unknown)}")
    return kind


class AutomationService:
    """
    Attributes:
        monitor: Per-owner inbox monitoring jobs
        ingestor: Feedback queue feeding the training datasets
        knowledge: Knowledge-base writes with cache invalidation
        transport: SMTP transport for manually sent replies
    """

    def __init__(self,
                 monitor: InboxMonitor,
                 ingestor: FeedbackIngestor,
                 knowledge: KnowledgeStore,
                 transport: Optional[MailTransport] = None):
        self.monitor = monitor
        self.ingestor = ingestor
        self.knowledge = knowledge
        self.transport = transport or MailTransport()

    async def start_automation(self, owner: str, interval_minutes: Optional[int] = None) -> Dict[str, Any]:
        """
        Enable automation for an owner and start its monitoring job.

        Raises:
            InvalidRequestError: If the mailbox is not verified or the knowledge base is too small
            NotFoundError: If the user does not exist
        """
        settings = await UserRepository.get_mailbox_settings(owner, include_secrets=False)
        if not settings or not settings.get("verified"):
            raise InvalidRequestError("Email integration not set up or verified")

        minimum = AUTOMATION_CONFIG["monitor"]["min_knowledge_entries"]
        if await self.knowledge.count(owner) < minimum:
            raise InvalidRequestError(
                f"Please add at least {minimum} entries to your knowledge base before starting automation"
            )

        interval = interval_minutes or AUTOMATION_CONFIG["monitor"]["default_interval_minutes"]
        if interval <= 0:
            raise InvalidRequestError("Interval must be positive")

        await UserRepository.set_automation(owner, True, interval)
        await self.monitor.start(owner, interval)
        return {
            "status": "running",
            "message": f"Email automation started, checking every {interval} minutes",
            "interval_minutes": interval,
        }

    async def stop_automation(self, owner: str) -> Dict[str, Any]:
        await UserRepository.set_automation(owner, False)
        await self.monitor.stop(owner)
        return {"status": "stopped", "message": "Email automation stopped"}

    async def get_status(self, owner: str) -> Dict[str, Any]:
        user = await UserRepository.get_user(owner)
        if not user:
            raise NotFoundError(f"User {owner} not found")
        return {
            "status": "running" if user["automation_enabled"] else "stopped",
            "settings": {
                "active": user["automation_enabled"],
                "interval": user["automation_interval"],
                "last_started": user["automation_last_started"],
            },
            "job": self.monitor.status(owner),
            "stats": await AutomatedEmailRepository.get_stats(owner),
        }

    async def get_history(self,
                          owner: str,
                          page: int = 1,
                          limit: int = 20,
                          category: Optional[str] = None) -> Dict[str, Any]:
        if page < 1 or limit < 1:
            raise InvalidRequestError("Page and limit must be positive")
        items, total = await AutomatedEmailRepository.list_history(owner, page, limit, category)
        return {
            "data": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": page_count(total, limit),
            },
        }

    async def get_email(self, owner: str, email_id: str) -> Dict[str, Any]:
        record = await AutomatedEmailRepository.get(owner, email_id)
        if not record:
            raise NotFoundError("Email not found")
        return record

    async def send_held_response(self, owner: str, email_id: str, response_text: str) -> Dict[str, Any]:
        """
        Send a reply for a record, typically one held for review.

        Raises:
            InvalidRequestError: If the text is empty or a response was already sent
            NotFoundError: If the record does not exist
            TransportError: If sending fails
        """
        if not response_text or not response_text.strip():
            raise InvalidRequestError("Response text is required")

        record = await self.get_email(owner, email_id)
        if record["response_sent"]:
            raise InvalidRequestError("Response already sent for this email")

        await self.transport.send_reply({
            "original_message_id": record["message_id"],
            "to": record["from"],
            "subject": reply_subject(record["subject"]),
            "text": response_text,
            "owner": owner,
        })
        updated = await AutomatedEmailRepository.update(
            owner,
            email_id,
            response_generated=True,
            response_sent=True,
            response_text=response_text,
            response_date=datetime.utcnow(),
            needs_human_review=False,
        )
        logger.info(f"Held response for {email_id} sent manually")
        return updated

    async def submit_feedback(self,
                              owner: str,
                              email_id: str,
                              feedback_type: str,
                              rating: Optional[int] = None,
                              improved_response: Optional[str] = None,
                              feedback_notes: Optional[str] = None,
                              improvements: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Record a review action and queue it for the training datasets.

        An edit also replaces the record's response text, clears its review
        flag and marks it `human_edited`.
        """
        kind = validate_feedback(feedback_type, rating, improved_response, improvements)
        record = await self.get_email(owner, email_id)

        feedback = await FeedbackRepository.create(
            owner,
            email_id,
            kind.value,
            original_response=record["response_text"],
            improved_response=improved_response or record["response_text"],
            rating=rating,
            feedback_notes=feedback_notes,
            improvements=improvements,
        )

        if kind == FeedbackType.EDIT:
            metadata = dict(record["metadata"])
            metadata["human_edited"] = True
            metadata["edited_at"] = datetime.utcnow().isoformat()
            await AutomatedEmailRepository.update(
                owner,
                email_id,
                response_text=improved_response,
                needs_human_review=False,
                meta=metadata,
            )

        await self.ingestor.ingest(await FeedbackRepository.get_with_email(feedback["id"]))
        return feedback

    async def get_feedback_history(self, owner: str) -> List[Dict[str, Any]]:
        return await FeedbackRepository.list_for_owner(owner)

    async def get_feedback_stats(self, owner: str) -> Dict[str, Any]:
        return {
            "stats": await FeedbackRepository.get_stats(owner),
            "training": self.ingestor.metrics(),
        }

    async def add_knowledge(self, owner: str, content: str, category: str = "General",
                            tags: Optional[List[str]] = None) -> Dict[str, Any]:
        return await self.knowledge.add(owner, content, category=category, tags=tags)

    async def delete_knowledge(self, owner: str, chunk_id: str) -> None:
        await self.knowledge.delete(owner, chunk_id)


def build_automation_service(datasets_dir: Optional[str] = None) -> AutomationService:
    """Wire the default collaborators: one shared knowledge cache, ingestor-driven fine-tuned model."""
    cache = KnowledgeBaseCache()
    embedder = default_embedding_chain()
    ingestor = FeedbackIngestor(sink=DatasetSink(datasets_dir))
    transport = MailTransport()
    processor = EmailProcessor(
        retriever=KnowledgeRetriever(cache, embedder),
        writer=ResponseGenerator(fine_tuned_model=lambda: ingestor.current_model),
        transport=transport,
    )
    monitor = InboxMonitor(processor, cache=cache)
    return AutomationService(monitor, ingestor, KnowledgeStore(cache, embedder), transport)
