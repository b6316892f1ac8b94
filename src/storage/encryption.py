"""
Mailbox Secret Encryption

Encrypts mailbox passwords and OAuth access tokens before they are written
to the mailbox_settings table.

Design Considerations:
- Fernet symmetric encryption keyed from TOKEN_ENCRYPTION_KEY
- Generated key (with a warning) when the variable is unset, so secrets
  written in that process are unreadable after restart
"""

import os
import base64
import logging
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)


def get_encryption_key() -> bytes:
    """
    Load the Fernet key from TOKEN_ENCRYPTION_KEY or derive a throwaway one.

    A configured value that is not itself a valid Fernet key is stretched
    with PBKDF2 into one, so any passphrase works.

    Returns:
        bytes: URL-safe base64 Fernet key
    """
    key_str = os.getenv("TOKEN_ENCRYPTION_KEY")
    if key_str:
        try:
            Fernet(key_str.encode())
            return key_str.encode()
        except (ValueError, TypeError):
            kdf = PBKDF2HMAC(
                algorithm=hashes.SHA256(),
                length=32,
                salt=b"inbox-automation-mailbox-secrets",
                iterations=100000,
            )
            return base64.urlsafe_b64encode(kdf.derive(key_str.encode()))

    logger.warning(
        "Using dynamically generated encryption key. Set TOKEN_ENCRYPTION_KEY "
        "environment variable for persistent encryption."
    )
    return Fernet.generate_key()


cipher_suite = Fernet(get_encryption_key())


def encrypt_value(value: Optional[Union[str, bytes]]) -> Optional[str]:
    """
    Encrypt a mailbox secret.

    Raises:
        ValueError: If encryption fails
    """
    if value is None:
        return None

    try:
        value_bytes = value.encode('utf-8') if isinstance(value, str) else value
        return cipher_suite.encrypt(value_bytes).decode('utf-8')
    except Exception as e:
        logger.error(f"Encryption error: {str(e)}")
        raise ValueError(f"Failed to encrypt value: {str(e)}")


def decrypt_value(encrypted_value: Optional[str]) -> Optional[str]:
    """
    Decrypt a mailbox secret.

    Raises:
        ValueError: If the token is invalid or was written under another key
    """
    if encrypted_value is None:
        return None

    try:
        return cipher_suite.decrypt(encrypted_value.encode('utf-8')).decode('utf-8')
    except InvalidToken:
        logger.error("Decryption error: token invalid or encrypted with another key")
        raise ValueError("Failed to decrypt value: invalid token")
