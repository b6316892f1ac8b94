"""
User Repository Implementation

Provides database operations for users, their durable automation switch,
and their mailbox connection settings.

All methods return dictionaries rather than ORM objects to prevent
session-related issues when objects are accessed after the session closes.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from src.errors import InvalidRequestError, NotFoundError
from src.storage.models import User, MailboxSettings
from src.storage.database import get_db_session
from src.storage.encryption import encrypt_value, decrypt_value

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user and mailbox settings persistence."""

    @staticmethod
    async def create_user(email: str, display_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a new user.

        Raises:
            InvalidRequestError: If a user with this email already exists
        """
        with get_db_session() as session:
            if session.query(User).filter(User.email == email).first():
                logger.warning(f"Attempted to create duplicate user with email: {email}")
                raise InvalidRequestError("User with this email already exists")

            user = User(email=email, display_name=display_name, created_at=datetime.utcnow())
            session.add(user)
            session.flush()
            logger.info(f"Created new user {user.id}")
            return user.to_dict()

    @staticmethod
    async def get_user(user_id: str) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            user = session.get(User, user_id)
            return user.to_dict() if user else None

    @staticmethod
    async def set_automation(user_id: str, enabled: bool, interval: Optional[int] = None) -> Dict[str, Any]:
        """
        Persist the automation switch for a user.

        Raises:
            NotFoundError: If the user does not exist
        """
        with get_db_session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError(f"User {user_id} not found")

            user.automation_enabled = enabled
            if interval is not None:
                user.automation_interval = interval
            if enabled:
                user.automation_last_started = datetime.utcnow()
            session.flush()
            logger.info(f"Automation {'enabled' if enabled else 'disabled'} for user {user_id}")
            return user.to_dict()

    @staticmethod
    async def list_automation_enabled() -> List[Dict[str, Any]]:
        """Users whose monitoring jobs should be running."""
        with get_db_session() as session:
            users = session.query(User).filter(User.automation_enabled.is_(True)).all()
            return [user.to_dict() for user in users]

    @staticmethod
    async def save_mailbox_settings(
        owner: str,
        provider: str,
        email: str,
        password: Optional[str] = None,
        access_token: Optional[str] = None,
        auth_type: str = "plain",
        server: Optional[str] = None,
        port: Optional[int] = None,
        secure: bool = True,
        smtp_server: Optional[str] = None,
        smtp_port: Optional[int] = None,
        verified: bool = False
    ) -> Dict[str, Any]:
        """Create or replace mailbox settings. Secrets are encrypted before storage."""
        with get_db_session() as session:
            settings = session.query(MailboxSettings).filter(MailboxSettings.owner == owner).first()
            if not settings:
                settings = MailboxSettings(owner=owner)
                session.add(settings)

            settings.provider = provider
            settings.email = email
            settings.password = encrypt_value(password)
            settings.access_token = encrypt_value(access_token)
            settings.auth_type = auth_type
            settings.server = server
            settings.port = port
            settings.secure = secure
            settings.smtp_server = smtp_server
            settings.smtp_port = smtp_port
            settings.verified = verified
            session.flush()

            logger.info(f"Saved {provider} mailbox settings for user {owner}")
            return UserRepository._mailbox_to_dict(settings, include_secrets=False)

    @staticmethod
    async def get_mailbox_settings(owner: str, include_secrets: bool = True) -> Optional[Dict[str, Any]]:
        with get_db_session() as session:
            settings = session.query(MailboxSettings).filter(MailboxSettings.owner == owner).first()
            if not settings:
                return None
            return UserRepository._mailbox_to_dict(settings, include_secrets=include_secrets)

    @staticmethod
    def _mailbox_to_dict(settings: MailboxSettings, include_secrets: bool) -> Dict[str, Any]:
        data = {
            "owner": settings.owner,
            "provider": settings.provider,
            "email": settings.email,
            "auth_type": settings.auth_type,
            "server": settings.server,
            "port": settings.port,
            "secure": settings.secure,
            "smtp_server": settings.smtp_server,
            "smtp_port": settings.smtp_port,
            "verified": settings.verified,
        }
        if include_secrets:
            data["password"] = decrypt_value(settings.password)
            data["access_token"] = decrypt_value(settings.access_token)
        return data
