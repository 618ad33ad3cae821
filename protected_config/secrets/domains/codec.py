"""Protection codec: encrypts and decrypts single configuration values."""
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .config_loader import Settings
from .errors import EncryptionError
from .gcp_client import GCPSecretClient
from .machine_key import machine_key
from .models import DecryptResult

logger = logging.getLogger(__name__)


class ProtectionCodec:
    """
    Converts plaintext strings to and from protected values.

    Protected values are Fernet tokens (URL-safe base64 text) under a key bound
    to this machine. They carry no format marker: a value counts as protected
    exactly when it decrypts under this codec's key.
    """

    def __init__(self, key: bytes):
        self._fernet = Fernet(key)

    @classmethod
    def for_machine(cls, settings: Optional[Settings] = None,
                    client: Optional[GCPSecretClient] = None) -> "ProtectionCodec":
        """Create a codec keyed to the executing machine."""
        return cls(machine_key(settings or Settings(), client))

    def encrypt(self, plaintext: str) -> str:
        """
        Protect a plaintext value.

        Args:
            plaintext: Non-blank value to protect

        Returns:
            Protected value as text

        Raises:
            ValueError: If plaintext is empty or whitespace
            EncryptionError: On any failure of the underlying primitive
        """
        if not isinstance(plaintext, str) or not plaintext.strip():
            raise ValueError("Cannot encrypt an empty or whitespace value")

        try:
            return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")
        except Exception as e:
            raise EncryptionError("Unexpected error occurred during encryption") from e

    def decrypt(self, candidate: str) -> DecryptResult:
        """Attempt to reverse a protected value. Never raises for bad input."""
        if not isinstance(candidate, str) or not candidate.strip():
            return DecryptResult.failure("empty value")

        try:
            token = candidate.encode("ascii")
        except UnicodeEncodeError:
            return DecryptResult.failure("not encoded text")

        try:
            data = self._fernet.decrypt(token)
        except InvalidToken:
            return DecryptResult.failure("not protected for this machine")

        try:
            return DecryptResult.success(data.decode("utf-8"))
        except UnicodeDecodeError:
            return DecryptResult.failure("payload is not UTF-8")

    def is_protected(self, value: str) -> bool:
        """True iff value decrypts under this codec's key."""
        return self.decrypt(value).ok
