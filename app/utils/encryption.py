# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
import os
from typing import Optional

from sqlalchemy.types import TypeDecorator, Text
from cryptography.fernet import Fernet

logger = logging.getLogger(__name__)

_fernet: Optional[Fernet] = None
_loaded = False


def get_fernet() -> Optional[Fernet]:
    """Fernet built from FERNET_SECRET, or None when encryption at rest is off."""
    global _fernet, _loaded
    if _loaded:
        return _fernet

    secret = os.getenv("FERNET_SECRET")
    if secret:
        try:
            _fernet = Fernet(secret)
        except Exception as e:
            raise ValueError("FERNET_SECRET is invalid. Make sure it is a valid 32-byte base64 string.") from e
    else:
        logger.warning("⚠️ FERNET_SECRET not set. Guardian phones are stored unencrypted.")
    _loaded = True
    return _fernet


def reset_fernet():
    global _fernet, _loaded
    _fernet = None
    _loaded = False


# 🔐 Encrypt/Decrypt helpers
def encrypt(text: str) -> str:
    fernet = get_fernet()
    if fernet is None:
        return text
    return fernet.encrypt(text.encode()).decode()


def decrypt(token: str) -> str:
    fernet = get_fernet()
    if fernet is None:
        return token
    return fernet.decrypt(token.encode()).decode()


# 🧩 Custom Encrypted DB Field
class EncryptedTypeHybrid(TypeDecorator):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            return encrypt(value)
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return decrypt(value)
        return value
