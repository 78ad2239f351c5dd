# services/crypto.py
"""
Encrypt secrets at rest (users' OpenAI keys) with Fernet.
"""
from __future__ import annotations

from cryptography.fernet import Fernet

from api.app.config import get_settings


def generate_key() -> str:
    return Fernet.generate_key().decode()


def get_fernet(key: str | None = None) -> Fernet:
    key = key or get_settings().encryption_key
    if not key:
        raise ValueError("ENCRYPTION_KEY is not set.")
    return Fernet(key)


def encrypt_secret(secret: str, key: str | None = None) -> str:
    return get_fernet(key).encrypt(secret.encode()).decode()


def decrypt_secret(encrypted_secret: str, key: str | None = None) -> str:
    return get_fernet(key).decrypt(encrypted_secret.encode()).decode()
