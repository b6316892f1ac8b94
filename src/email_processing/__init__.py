"""
Email processing package initialization.
"""

from .models import (
    InboundMessage,
    EmailCategory,
    FeedbackType,
    ImprovementArea,
    QualityCheckResult,
)
from .analyzers.classifier import EmailClassifier
from .analyzers.query_generator import QueryGenerator
from .analyzers.quality_gate import QualityGate
from .handlers.writer import ResponseGenerator
from .knowledge import KnowledgeBaseCache, KnowledgeRetriever, KnowledgeStore
from .processor import EmailProcessor

__all__ = [
    'InboundMessage',
    'EmailCategory',
    'FeedbackType',
    'ImprovementArea',
    'QualityCheckResult',
    'EmailClassifier',
    'QueryGenerator',
    'QualityGate',
    'ResponseGenerator',
    'KnowledgeBaseCache',
    'KnowledgeRetriever',
    'KnowledgeStore',
    'EmailProcessor'
]
