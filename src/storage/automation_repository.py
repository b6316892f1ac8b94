"""
Automation Repositories

Data access for knowledge-base chunks, automated email records and human
feedback, keyed by owner.

Design Considerations:
- Repository pattern returning plain dictionaries
- find-by-(owner, message_id) for the pipeline's dedup check
- The unique constraint on (owner, message_id) turns a racing duplicate
  insert into a lookup of the existing record
"""

import logging
import math
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from src.storage.models import KnowledgeChunk, AutomatedEmail, Feedback
from src.storage.database import get_db_session

logger = logging.getLogger(__name__)

_AUTOMATED_EMAIL_FIELDS = {
    "subject", "sender", "recipient", "received_date", "body", "category",
    "response_generated", "response_sent", "response_text", "response_date",
    "needs_human_review", "meta",
}


class KnowledgeRepository:
    """Persistence for KnowledgeChunk rows."""

    @staticmethod
    async def create(
        owner: str,
        content: str,
        embedding: Optional[List[float]] = None,
        category: str = "General",
        tags: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        with get_db_session() as session:
            chunk = KnowledgeChunk(
                owner=owner,
                content=content,
                embedding=embedding or None,
                category=category or "General",
                tags=sorted(set(tags or [])),
                meta=metadata or {},
            )
            session.add(chunk)
            session.flush()
            return chunk.to_dict()

    @staticmethod
    async def get(owner: str, chunk_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            chunk = session.query(KnowledgeChunk).filter(
                KnowledgeChunk.owner == owner, KnowledgeChunk.id == chunk_id
            ).first()
            return chunk.to_dict() if chunk else None

    @staticmethod
    async def update(owner: str, chunk_id: str, **fields) -> Optional[Dict[str, Any]]:
        """Apply field changes; `metadata` maps to the meta column."""
        with get_db_session() as session:
            chunk = session.query(KnowledgeChunk).filter(
                KnowledgeChunk.owner == owner, KnowledgeChunk.id == chunk_id
            ).first()
            if not chunk:
                return None

            for name, value in fields.items():
                if name == "metadata":
                    chunk.meta = value or {}
                elif name == "tags":
                    chunk.tags = sorted(set(value or []))
                elif name in ("content", "embedding", "category"):
                    setattr(chunk, name, value)
                else:
                    raise ValueError(f"Unknown knowledge field: {name}")
            chunk.updated_at = datetime.utcnow()
            session.flush()
            return chunk.to_dict()

    @staticmethod
    async def delete(owner: str, chunk_id: str) -> bool:
        with get_db_session() as session:
            deleted = session.query(KnowledgeChunk).filter(
                KnowledgeChunk.owner == owner, KnowledgeChunk.id == chunk_id
            ).delete()
            return bool(deleted)

    @staticmethod
    async def list_for_owner(owner: str) -> List[Dict[str, Any]]:
        """All chunks for an owner, newest first."""
        with get_db_session() as session:
            chunks = session.query(KnowledgeChunk).filter(
                KnowledgeChunk.owner == owner
            ).order_by(KnowledgeChunk.created_at.desc()).all()
            return [chunk.to_dict() for chunk in chunks]

    @staticmethod
    async def count_for_owner(owner: str) -> int:
        with get_db_session() as session:
            return session.query(KnowledgeChunk).filter(KnowledgeChunk.owner == owner).count()


class AutomatedEmailRepository:
    """Persistence for AutomatedEmail rows."""

    @staticmethod
    async def find_by_message_id(owner: str, message_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            record = session.query(AutomatedEmail).filter(
                AutomatedEmail.owner == owner, AutomatedEmail.message_id == message_id
            ).first()
            return record.to_dict() if record else None

    @staticmethod
    async def create(owner: str, message_id: str, **fields) -> Dict[str, Any]:
        """
        Insert a record, or return the existing one for the same (owner, message_id).

        Raises:
            ValueError: On unknown fields
        """
        unknown = set(fields) - _AUTOMATED_EMAIL_FIELDS
        if unknown:
            raise ValueError(f"Unknown automated email fields: {sorted(unknown)}")

        try:
            with get_db_session() as session:
                record = AutomatedEmail(owner=owner, message_id=message_id, **fields)
                session.add(record)
                session.flush()
                return record.to_dict()
        except IntegrityError:
            existing = await AutomatedEmailRepository.find_by_message_id(owner, message_id)
            if existing is None:
                raise
            logger.warning(f"Record for message {message_id} already exists, keeping the first one")
            return existing

    @staticmethod
    async def get(owner: str, email_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            record = session.query(AutomatedEmail).filter(
                AutomatedEmail.owner == owner, AutomatedEmail.id == email_id
            ).first()
            return record.to_dict() if record else None

    @staticmethod
    async def update(owner: str, email_id: str, **fields) -> Optional[Dict[str, Any]]:
        unknown = set(fields) - _AUTOMATED_EMAIL_FIELDS
        if unknown:
            raise ValueError(f"Unknown automated email fields: {sorted(unknown)}")

        with get_db_session() as session:
            record = session.query(AutomatedEmail).filter(
                AutomatedEmail.owner == owner, AutomatedEmail.id == email_id
            ).first()
            if not record:
                return None
            for name, value in fields.items():
                setattr(record, name, value)
            session.flush()
            return record.to_dict()

    @staticmethod
    async def list_history(
        owner: str,
        page: int = 1,
        limit: int = 20,
        category: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Paginated records, most recently received first.

        `category="needs_review"` filters on the review flag; `"all"` or
        None disables filtering.
        """
        with get_db_session() as session:
            query = session.query(AutomatedEmail).filter(AutomatedEmail.owner == owner)
            if category and category != "all":
                if category == "needs_review":
                    query = query.filter(AutomatedEmail.needs_human_review.is_(True))
                else:
                    query = query.filter(AutomatedEmail.category == category)

            total = query.count()
            records = query.order_by(
                AutomatedEmail.received_date.desc(), AutomatedEmail.created_at.desc()
            ).offset((page - 1) * limit).limit(limit).all()
            return [record.to_dict() for record in records], total

    @staticmethod
    async def count_for_owner(owner: str) -> int:
        with get_db_session() as session:
            return session.query(AutomatedEmail).filter(AutomatedEmail.owner == owner).count()

    @staticmethod
    async def get_stats(owner: str) -> Dict[str, Any]:
        """Processed / responded / review counts, mean response time and category breakdown."""
        with get_db_session() as session:
            base = session.query(AutomatedEmail).filter(AutomatedEmail.owner == owner)
            total_processed = base.count()
            total_responded = base.filter(AutomatedEmail.response_sent.is_(True)).count()
            needs_review = base.filter(AutomatedEmail.needs_human_review.is_(True)).count()

            timed = base.filter(
                AutomatedEmail.response_sent.is_(True),
                AutomatedEmail.response_date.isnot(None),
                AutomatedEmail.received_date.isnot(None)
            ).all()
            avg_minutes = 0
            if timed:
                total_seconds = sum(
                    (record.response_date - record.received_date).total_seconds() for record in timed
                )
                avg_minutes = round(total_seconds / len(timed) / 60)

            rows = session.query(AutomatedEmail.category, func.count(AutomatedEmail.id)).filter(
                AutomatedEmail.owner == owner
            ).group_by(AutomatedEmail.category).all()

            return {
                "total_processed": total_processed,
                "total_responded": total_responded,
                "needs_review": needs_review,
                "avg_response_time_minutes": avg_minutes,
                "categories": {category: count for category, count in rows},
            }


class FeedbackRepository:
    """Persistence for Feedback rows. Feedback is never updated."""

    @staticmethod
    async def create(
        owner: str,
        automated_email_id: str,
        feedback_type: str,
        original_response: Optional[str],
        improved_response: Optional[str],
        rating: Optional[int] = None,
        feedback_notes: Optional[str] = None,
        improvements: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        with get_db_session() as session:
            feedback = Feedback(
                owner=owner,
                automated_email_id=automated_email_id,
                feedback_type=feedback_type,
                original_response=original_response,
                improved_response=improved_response,
                rating=rating,
                feedback_notes=feedback_notes,
                improvements=sorted(set(improvements or [])),
            )
            session.add(feedback)
            session.flush()
            return feedback.to_dict()

    @staticmethod
    async def get_with_email(feedback_id: str) -> Optional[Dict[str, Any]]:
        """Feedback with its automated email embedded under `automated_email`."""
        with get_db_session() as session:
            feedback = session.get(Feedback, feedback_id)
            if not feedback:
                return None
            data = feedback.to_dict()
            data["automated_email"] = (
                feedback.automated_email.to_dict() if feedback.automated_email else None
            )
            return data

    @staticmethod
    async def list_for_owner(owner: str) -> List[Dict[str, Any]]:
        """Feedback newest first, each with a summary of its email."""
        with get_db_session() as session:
            items = session.query(Feedback).filter(
                Feedback.owner == owner
            ).order_by(Feedback.created_at.desc()).all()

            result = []
            for item in items:
                data = item.to_dict()
                email = item.automated_email
                data["automated_email"] = {
                    "id": email.id,
                    "subject": email.subject,
                    "category": email.category,
                    "received_date": email.received_date.isoformat() if email.received_date else None,
                } if email else None
                result.append(data)
            return result

    @staticmethod
    async def get_stats(owner: str) -> Dict[str, Any]:
        with get_db_session() as session:
            feedback = session.query(Feedback).filter(Feedback.owner == owner).all()

            by_type: Dict[str, int] = {}
            improvements: Dict[str, int] = {}
            ratings = []
            for item in feedback:
                by_type[item.feedback_type] = by_type.get(item.feedback_type, 0) + 1
                if item.rating is not None:
                    ratings.append(item.rating)
                for area in item.improvements or []:
                    improvements[area] = improvements.get(area, 0) + 1

            return {
                "total": len(feedback),
                "by_type": by_type,
                "rating": {
                    "average": sum(ratings) / len(ratings) if ratings else 0,
                    "count": len(ratings),
                },
                "improvements": dict(sorted(improvements.items(), key=lambda kv: -kv[1])),
            }


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0
