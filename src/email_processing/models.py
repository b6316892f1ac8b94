"""
Shared data models for email processing.
"""

from dataclasses import dataclass
from enum import Enum

from src.integrations.mail.message import InboundMessage


class EmailCategory(Enum):
    """Intent categories an inbound message is classified into."""
    PRODUCT_INQUIRY = "product_inquiry"
    CUSTOMER_COMPLAINT = "customer_complaint"
    CUSTOMER_FEEDBACK = "customer_feedback"
    UNRELATED = "unrelated"


# Keyword match order used when mapping model output to a category
CATEGORY_PRIORITY = (
    EmailCategory.PRODUCT_INQUIRY,
    EmailCategory.CUSTOMER_COMPLAINT,
    EmailCategory.CUSTOMER_FEEDBACK,
)


class FeedbackType(Enum):
    EDIT = "edit"
    APPROVE = "approve"
    REJECT = "reject"


class ImprovementArea(Enum):
    FACTUAL_ACCURACY = "factual_accuracy"
    RELEVANCE = "relevance"
    TONE = "tone"
    GRAMMAR = "grammar"
    CLARITY = "clarity"
    COMPLETENESS = "completeness"
    PERSONALIZATION = "personalization"


@dataclass
class QualityCheckResult:
    """Outcome of the quality gate for one draft."""
    sendable: bool
    feedback: str = ""
    failed_open: bool = False


__all__ = [
    'InboundMessage',
    'EmailCategory',
    'CATEGORY_PRIORITY',
    'FeedbackType',
    'ImprovementArea',
    'QualityCheckResult',
]
