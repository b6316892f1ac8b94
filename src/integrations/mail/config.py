"""
Mailbox connection settings.

Resolves a user's stored mailbox settings into IMAP and SMTP endpoints.
Known providers use fixed hosts; `custom` uses the stored server values.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Any, Optional

from src.integrations.errors import MailboxConfigError
from src.storage.user_repository import UserRepository

logger = logging.getLogger(__name__)

PROVIDER_SETTINGS = {
    "titan": {
        "imap_host": "imap.titan.email", "imap_port": 993,
        "smtp_host": "smtp.titan.email", "smtp_port": 465,
    },
    "gmail": {
        "imap_host": "imap.gmail.com", "imap_port": 993,
        "smtp_host": "smtp.gmail.com", "smtp_port": 465,
    },
    "outlook": {
        "imap_host": "outlook.office365.com", "imap_port": 993,
        "smtp_host": "smtp.office365.com", "smtp_port": 587,
    },
}


@dataclass
class MailboxConfig:
    owner: str
    email: str
    imap_host: str
    imap_port: int
    smtp_host: str
    smtp_port: int
    ssl: bool = True
    auth_type: str = "plain"
    password: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def uses_oauth(self) -> bool:
        return self.auth_type == "oauth2"


def build_mailbox_config(settings: Dict[str, Any]) -> MailboxConfig:
    """
    Build a MailboxConfig from a stored settings dict.

    Raises:
        MailboxConfigError: For unknown providers, missing hosts or missing credentials
    """
    provider = settings.get("provider") or "custom"
    if provider in PROVIDER_SETTINGS:
        hosts = dict(PROVIDER_SETTINGS[provider])
    elif provider == "custom":
        if not settings.get("server"):
            raise MailboxConfigError("Custom mailbox requires an IMAP server")
        hosts = {
            "imap_host": settings["server"],
            "imap_port": settings.get("port") or 993,
            "smtp_host": settings.get("smtp_server") or settings["server"],
            "smtp_port": settings.get("smtp_port") or 465,
        }
    else:
        raise MailboxConfigError(f"Unsupported mailbox provider: {provider}")

    auth_type = settings.get("auth_type") or "plain"
    if auth_type == "oauth2" and not settings.get("access_token"):
        raise MailboxConfigError("OAuth2 mailbox has no access token")
    if auth_type != "oauth2" and not settings.get("password"):
        raise MailboxConfigError("Mailbox has no password")

    return MailboxConfig(
        owner=settings["owner"],
        email=settings["email"],
        ssl=settings.get("secure", True),
        auth_type=auth_type,
        password=settings.get("password"),
        access_token=settings.get("access_token"),
        **hosts
    )


async def load_mailbox_config(owner: str) -> MailboxConfig:
    """
    Load and resolve the stored mailbox settings for an owner.

    Raises:
        MailboxConfigError: If nothing is stored or the settings are invalid
    """
    settings = await UserRepository.get_mailbox_settings(owner)
    if not settings:
        raise MailboxConfigError(f"No mailbox configured for user {owner}")
    return build_mailbox_config(settings)
