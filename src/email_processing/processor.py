"""
Email Processing Pipeline

Runs one inbound message through the automation pipeline and persists
exactly one AutomatedEmail record per (owner, message_id):

1. Dedup check against existing records
2. Classification (failure -> unrelated)
3. Category branch: unrelated mail is recorded and never answered; product
   inquiries get retrieval context; complaints and feedback are answered
   without context
4. Quality gate on the draft
5. Send, or hold for human review when the gate rejects the draft or the
   send fails
6. Persist the outcome

Any failure downstream of classification still produces a record, marked
unrelated and flagged for review with the error in its metadata. Messages
that could not be parsed skip classification and are recorded the same
way. Only persistence errors propagate to the caller.
"""

import logging
import time
from datetime import datetime
from typing import Any, Dict, Optional

from src.email_processing.base import mask_email
from src.email_processing.models import EmailCategory, InboundMessage
from src.email_processing.analyzers.classifier import EmailClassifier
from src.email_processing.analyzers.query_generator import QueryGenerator
from src.email_processing.analyzers.quality_gate import QualityGate
from src.email_processing.handlers.writer import ResponseGenerator
from src.email_processing.knowledge.cache import KnowledgeBaseCache
from src.email_processing.knowledge.retriever import KnowledgeRetriever
from src.integrations.mail.transport import MailTransport
from src.storage.automation_repository import AutomatedEmailRepository

logger = logging.getLogger(__name__)


def reply_subject(subject: Optional[str]) -> str:
    subject = subject or ""
    if subject.lower().startswith("re:"):
        return subject
    return f"Re: {subject}"


def _held_for_review() -> Dict[str, Any]:
    return {
        "category": EmailCategory.UNRELATED.value,
        "response_generated": False,
        "response_sent": False,
        "needs_human_review": True,
    }


class EmailProcessor:
    """
    Orchestrates classification, retrieval, drafting, quality gate and send-or-hold.

    Collaborators are injectable; defaults are built from AUTOMATION_CONFIG.
    Messages for one owner must be processed sequentially for the dedup
    check to be race-free; the unique constraint on (owner, message_id)
    backs it up.
    """

    def __init__(self,
                 classifier: Optional[EmailClassifier] = None,
                 query_generator: Optional[QueryGenerator] = None,
                 retriever: Optional[KnowledgeRetriever] = None,
                 writer: Optional[ResponseGenerator] = None,
                 quality_gate: Optional[QualityGate] = None,
                 transport: Optional[MailTransport] = None,
                 cache: Optional[KnowledgeBaseCache] = None):
        self.classifier = classifier or EmailClassifier()
        self.query_generator = query_generator or QueryGenerator()
        self.retriever = retriever or KnowledgeRetriever(cache or KnowledgeBaseCache())
        self.writer = writer or ResponseGenerator()
        self.quality_gate = quality_gate or QualityGate()
        self.transport = transport or MailTransport()
        logger.info("EmailProcessor initialized successfully")

    async def process(self, message: InboundMessage, owner: str) -> Optional[Dict[str, Any]]:
        """
        Process one message for an owner.

        Returns:
            The persisted record, or None if the message was already processed

        Raises:
            Exception: Persistence errors only
        """
        existing = await AutomatedEmailRepository.find_by_message_id(owner, message.message_id)
        if existing:
            logger.info(f"Message {message.message_id} already processed for user {owner}, skipping")
            return None

        start_time = time.time()
        logger.info(
            f"Processing message {message.message_id} from {mask_email(message.sender_address)} "
            f"for user {owner}"
        )

        fields: Dict[str, Any]
        metadata: Dict[str, Any]

        if message.parse_error:
            logger.warning(f"Message {message.message_id} could not be parsed, recording for review")
            fields = _held_for_review()
            metadata = {"error": message.parse_error}
        else:
            category = await self.classifier.classify(message)
            fields = {
                "category": category.value,
                "response_generated": False,
                "response_sent": False,
                "needs_human_review": False,
            }
            metadata = {}

            if category != EmailCategory.UNRELATED:
                try:
                    await self._respond(message, owner, category, fields, metadata)
                except Exception as e:
                    logger.error(f"Processing failed for message {message.message_id}: {e}", exc_info=True)
                    fields = _held_for_review()
                    metadata = {"error": str(e), "classified_as": category.value}
            else:
                logger.info(f"Message {message.message_id} is unrelated, recording without reply")

        metadata["processing_time"] = round(time.time() - start_time, 3)
        record = await AutomatedEmailRepository.create(
            owner,
            message.message_id,
            subject=message.subject,
            sender=message.sender,
            recipient=message.recipient,
            received_date=message.received_at,
            body=message.body,
            meta=metadata,
            **fields
        )
        logger.info(
            f"Recorded message {message.message_id}: category={record['category']} "
            f"sent={record['response_sent']} review={record['needs_human_review']}"
        )
        return record

    async def _respond(self,
                       message: InboundMessage,
                       owner: str,
                       category: EmailCategory,
                       fields: Dict[str, Any],
                       metadata: Dict[str, Any]) -> None:
        context = None
        if category == EmailCategory.PRODUCT_INQUIRY:
            queries = await self.query_generator.generate(message.body)
            context = await self.retriever.retrieve(queries, owner)
            metadata["queries"] = queries

        draft = await self.writer.generate(message, category, context)
        fields["response_generated"] = True
        fields["response_text"] = draft

        quality = await self.quality_gate.check(message.body, draft)
        metadata["quality_feedback"] = quality.feedback
        if quality.failed_open:
            metadata["quality_check_failed_open"] = True

        if not quality.sendable:
            logger.info(f"Draft for {message.message_id} held for review: {quality.feedback}")
            fields["needs_human_review"] = True
            return

        try:
            result = await self.transport.send_reply({
                "original_message_id": message.message_id,
                "to": message.sender,
                "subject": reply_subject(message.subject),
                "text": draft,
                "owner": owner,
            })
        except Exception as e:
            logger.error(f"Sending reply to {message.message_id} failed, holding for review: {e}")
            fields["needs_human_review"] = True
            metadata["send_error"] = str(e)
            return

        fields["response_sent"] = True
        fields["response_date"] = datetime.utcnow()
        metadata["sent_message_id"] = (result or {}).get("message_id")
