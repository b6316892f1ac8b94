"""
Storage package: SQLAlchemy models, session management and repositories.
"""

from .database import init_db, get_db_session, configure_database
from .user_repository import UserRepository
from .automation_repository import (
    KnowledgeRepository,
    AutomatedEmailRepository,
    FeedbackRepository,
)

__all__ = [
    'init_db',
    'get_db_session',
    'configure_database',
    'UserRepository',
    'KnowledgeRepository',
    'AutomatedEmailRepository',
    'FeedbackRepository',
]
