"""Fernet helpers for OAuth tokens stored at rest"""
from typing import Optional

from cryptography.fernet import Fernet

from realty_booking.config.settings import get_settings


# Generate a key once and store it as CALENDAR_ENCRYPTION_KEY:
#   Fernet.generate_key()


def get_cipher(key: Optional[str] = None) -> Fernet:
    """Get Fernet cipher instance"""
    key = key or get_settings().CALENDAR_ENCRYPTION_KEY
    if not key:
        raise ValueError("CALENDAR_ENCRYPTION_KEY is not set")
    return Fernet(key.encode() if isinstance(key, str) else key)


def encrypt_token(token: Optional[str], key: Optional[str] = None) -> Optional[bytes]:
    """Encrypt a token string"""
    if not token:
        return None
    return get_cipher(key).encrypt(token.encode())


def decrypt_token(encrypted_token: Optional[bytes], key: Optional[str] = None) -> Optional[str]:
    """Decrypt a token"""
    if not encrypted_token:
        return None
    return get_cipher(key).decrypt(encrypted_token).decode()
