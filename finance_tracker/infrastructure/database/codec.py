"""Field-level encryption applied at the persistence boundary

Sensitive columns are declared with EncryptedText / EncryptedDecimal. Values
are encrypted on bind and decrypted on load, so domain code only ever sees
plaintext. Ciphertext carries a version prefix: encoding an already-encrypted
value is a no-op, and a value without the prefix is returned as stored.
"""

import base64
import hashlib
import logging
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.types import Text, TypeDecorator

from finance_tracker.config import settings

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "enc1:"


class FieldCodec:
    """Fernet codec for individual column values"""

    def __init__(self, secret: str):
        # Fernet needs 32 url-safe base64 bytes; derive them from any secret string
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
        self._fernet = Fernet(key)

    @staticmethod
    def is_encrypted(value: str) -> bool:
        return value.startswith(ENCRYPTED_PREFIX)

    def encode(self, value: Optional[str]) -> Optional[str]:
        if value is None or self.is_encrypted(value):
            return value
        token = self._fernet.encrypt(value.encode("utf-8")).decode("ascii")
        return f"{ENCRYPTED_PREFIX}{token}"

    def decode(self, value: Optional[str]) -> Optional[str]:
        """Decrypt a stored value; on failure log a warning and return it raw"""
        if value is None or not self.is_encrypted(value):
            return value
        try:
            token = value[len(ENCRYPTED_PREFIX):].encode("ascii")
            return self._fernet.decrypt(token).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            logger.warning(
                "Field decryption failed, returning raw value",
                extra={"error": type(e).__name__},
            )
            return value


@lru_cache()
def get_codec() -> FieldCodec:
    """Codec keyed from settings (cached)"""
    return FieldCodec(settings.field_encryption_key)


class EncryptedText(TypeDecorator):
    """Text column stored encrypted"""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return get_codec().encode(str(value))

    def process_result_value(self, value, dialect):
        return get_codec().decode(value)


class EncryptedDecimal(EncryptedText):
    """Decimal stored as encrypted text"""

    cache_ok = True

    def process_result_value(self, value, dialect):
        plain = super().process_result_value(value, dialect)
        if plain is None:
            return None
        try:
            return Decimal(plain)
        except InvalidOperation:
            logger.warning("Stored decimal could not be parsed, returning raw value")
            return plain
