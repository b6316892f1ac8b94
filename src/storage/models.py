"""
Database Models for Inbox Automation

Defines the persisted records of the automation subsystem: users with their
durable automation flag, mailbox connection settings, knowledge-base chunks,
one AutomatedEmail per processed inbound message, and human feedback.

Design Considerations:
- At most one AutomatedEmail per (owner, message_id), enforced by a unique constraint
- Mailbox secrets are stored encrypted (see encryption.py)
- Embeddings stored as JSON lists; absent when the embedding call failed
"""

import uuid
from datetime import datetime
from typing import Dict, Any

from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Text, Integer, JSON, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


class User(Base):
    """
    Account owning mailboxes, knowledge entries and automation runs.

    `automation_enabled` is the durable switch re-hydrated into monitoring
    jobs when the process starts.
    """
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=True)

    automation_enabled = Column(Boolean, default=False, nullable=False)
    automation_interval = Column(Integer, default=5, nullable=False)
    automation_last_started = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    mailbox = relationship("MailboxSettings", back_populates="user", uselist=False,
                           cascade="all, delete-orphan")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "automation_enabled": self.automation_enabled,
            "automation_interval": self.automation_interval,
            "automation_last_started": _iso(self.automation_last_started),
            "created_at": _iso(self.created_at),
        }


class MailboxSettings(Base):
    """IMAP/SMTP connection settings for one user's support inbox."""
    __tablename__ = "mailbox_settings"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    provider = Column(String(20), nullable=False, default="custom")  # titan, gmail, outlook, custom
    email = Column(String(255), nullable=False)

    # Encrypted at rest
    password = Column(Text, nullable=True)
    access_token = Column(Text, nullable=True)

    auth_type = Column(String(20), nullable=False, default="plain")  # plain, oauth2
    server = Column(String(255), nullable=True)
    port = Column(Integer, nullable=True)
    secure = Column(Boolean, default=True, nullable=False)
    smtp_server = Column(String(255), nullable=True)
    smtp_port = Column(Integer, nullable=True)
    verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="mailbox")


class KnowledgeChunk(Base):
    """A piece of owner-supplied knowledge used to ground replies."""
    __tablename__ = "knowledge_chunks"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    embedding = Column(JSON, nullable=True)
    category = Column(String(100), nullable=False, default="General")
    tags = Column(JSON, nullable=False, default=list)
    meta = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "content": self.content,
            "embedding": list(self.embedding) if self.embedding else None,
            "category": self.category,
            "tags": list(self.tags or []),
            "metadata": dict(self.meta or {}),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class AutomatedEmail(Base):
    """Outcome of one pipeline run for one inbound message."""
    __tablename__ = "automated_emails"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    message_id = Column(String(998), nullable=False)
    subject = Column(Text, nullable=True)
    sender = Column(String(512), nullable=True)
    recipient = Column(String(512), nullable=True)
    received_date = Column(DateTime, nullable=True)
    body = Column(Text, nullable=True)

    category = Column(String(50), nullable=False, default="unrelated")
    response_generated = Column(Boolean, default=False, nullable=False)
    response_sent = Column(Boolean, default=False, nullable=False)
    response_text = Column(Text, nullable=True)
    response_date = Column(DateTime, nullable=True)
    needs_human_review = Column(Boolean, default=False, nullable=False)
    meta = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner", "message_id", name="uq_automated_email_owner_message"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "message_id": self.message_id,
            "subject": self.subject,
            "from": self.sender,
            "to": self.recipient,
            "received_date": _iso(self.received_date),
            "body": self.body,
            "category": self.category,
            "response_generated": self.response_generated,
            "response_sent": self.response_sent,
            "response_text": self.response_text,
            "response_date": _iso(self.response_date),
            "needs_human_review": self.needs_human_review,
            "metadata": dict(self.meta or {}),
            "created_at": _iso(self.created_at),
        }


class Feedback(Base):
    """A single human review action on an automated response. Immutable."""
    __tablename__ = "feedback"

    id = Column(String(36), primary_key=True, default=_new_id)
    owner = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    automated_email_id = Column(String(36), ForeignKey("automated_emails.id", ondelete="CASCADE"),
                                nullable=False)
    original_response = Column(Text, nullable=True)
    improved_response = Column(Text, nullable=True)
    feedback_type = Column(String(20), nullable=False)
    rating = Column(Integer, nullable=True)
    feedback_notes = Column(Text, nullable=True)
    improvements = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    automated_email = relationship("AutomatedEmail")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner": self.owner,
            "automated_email_id": self.automated_email_id,
            "original_response": self.original_response,
            "improved_response": self.improved_response,
            "feedback_type": self.feedback_type,
            "rating": self.rating,
            "feedback_notes": self.feedback_notes,
            "improvements": list(self.improvements or []),
            "created_at": _iso(self.created_at),
        }
