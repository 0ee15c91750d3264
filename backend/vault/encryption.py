import logging

from cryptography.fernet import Fernet, InvalidToken

from vault.errors import InternalError

logger = logging.getLogger(__name__)


class FieldCipher:
    """Fernet encryption for single sensitive columns (passport numbers)."""

    def __init__(self, key: str):
        self._fernet = Fernet(key.encode())

    def encrypt(self, plaintext: str | None) -> str | None:
        # Empty values are stored as NULL rather than as ciphertext of ""
        if not plaintext:
            return None
        return self._fernet.encrypt(plaintext.encode()).decode()

    def decrypt(self, ciphertext: str | None) -> str | None:
        if not ciphertext:
            return None
        try:
            return self._fernet.decrypt(ciphertext.encode()).decode()
        except InvalidToken as exc:
            logger.error("[encryption] stored value does not decrypt with ENCRYPTION_KEY")
            raise InternalError("Stored data could not be decrypted") from exc
