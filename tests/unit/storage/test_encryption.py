"""
Unit tests for mailbox secret encryption.
"""

import os
import pytest
from unittest.mock import patch
from cryptography.fernet import Fernet

from src.storage.encryption import (
    get_encryption_key,
    encrypt_value,
    decrypt_value,
)


class TestEncryption:
    """Key loading and value encryption/decryption."""

    def test_get_encryption_key_from_env(self):
        test_key = Fernet.generate_key().decode()

        with patch.dict(os.environ, {"TOKEN_ENCRYPTION_KEY": test_key}):
            assert get_encryption_key() == test_key.encode()

    def test_get_encryption_key_generates_new(self):
        with patch.dict(os.environ, {}, clear=True):
            result = get_encryption_key()

        assert isinstance(result, bytes)
        Fernet(result)

    def test_passphrase_is_stretched_into_stable_key(self):
        with patch.dict(os.environ, {"TOKEN_ENCRYPTION_KEY": "not a fernet key"}):
            first = get_encryption_key()
            second = get_encryption_key()

        assert first == second
        Fernet(first)

    @patch('src.storage.encryption.cipher_suite')
    def test_encrypt_value_bytes_input(self, mock_cipher):
        mock_cipher.encrypt.return_value = b'encrypted_bytes'

        result = encrypt_value(b'test_bytes')

        mock_cipher.encrypt.assert_called_once_with(b'test_bytes')
        assert result == 'encrypted_bytes'

    @patch('src.storage.encryption.cipher_suite')
    def test_none_is_passed_through(self, mock_cipher):
        assert encrypt_value(None) is None
        assert decrypt_value(None) is None
        mock_cipher.encrypt.assert_not_called()
        mock_cipher.decrypt.assert_not_called()

    @patch('src.storage.encryption.cipher_suite')
    def test_encrypt_value_error_handling(self, mock_cipher):
        mock_cipher.encrypt.side_effect = Exception("Encryption error")

        with pytest.raises(ValueError) as excinfo:
            encrypt_value('test_value')

        assert "Failed to encrypt value" in str(excinfo.value)

    def test_decrypt_with_other_key_fails(self):
        encrypted = Fernet(Fernet.generate_key()).encrypt(b"secret").decode()

        with pytest.raises(ValueError) as excinfo:
            decrypt_value(encrypted)

        assert "invalid token" in str(excinfo.value)

    def test_end_to_end_encryption_decryption(self):
        with patch('src.storage.encryption.cipher_suite', Fernet(Fernet.generate_key())):
            encrypted = encrypt_value("app-password")

            assert encrypted != "app-password"
            assert decrypt_value(encrypted) == "app-password"
