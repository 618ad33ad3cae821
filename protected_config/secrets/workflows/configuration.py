"""Configuration holder with transparent decryption of protected values."""
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from ..domains.codec import ProtectionCodec
from ..domains.config_loader import DEFAULT_SECRETS_PATH, Settings, load_settings
from ..domains.errors import KeyNotFoundError
from ..domains.merged import FileSource, MergedConfiguration
from .rewrite import SecretsRewriter

logger = logging.getLogger(__name__)


class ProtectedConfiguration:
    """
    Owns a merged configuration view that includes the secrets file.

    Binding a base configuration first protects any plaintext values in the
    secrets file, then layers the file over the base. Lookups decrypt
    protected values and return everything else verbatim.

    Usage:
        codec = ProtectionCodec.for_machine()
        config = ProtectedConfiguration(codec)
        config.bind({"Logging": {"Level": "Info"}})
        password = config.get_value("Database:Password")
    """

    def __init__(self, codec: ProtectionCodec,
                 secrets_path: Union[str, Path] = DEFAULT_SECRETS_PATH):
        self.codec = codec
        self.secrets_path = Path(secrets_path)
        self.rewriter = SecretsRewriter(codec, self.secrets_path)
        self._configuration = MergedConfiguration()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ProtectedConfiguration":
        """Build from tool settings, loading them if not given."""
        settings = settings or load_settings()
        return cls(ProtectionCodec.for_machine(settings), settings.secrets_path)

    @property
    def configuration(self) -> MergedConfiguration:
        return self._configuration

    def bind(self, base: Union[MergedConfiguration, Mapping[str, Any], None]) -> MergedConfiguration:
        """
        Protect the secrets file and bind a new merged view over base.

        Raises:
            SecretsDocumentError: If the secrets file is malformed
            EncryptionError: If a secret cannot be protected
        """
        self.rewriter.rewrite()
        configuration = MergedConfiguration.from_base(base, FileSource(self.secrets_path, optional=True))
        self._configuration = configuration
        logger.debug(f"Bound configuration with {len(configuration.sources)} source(s)")
        return configuration

    def get_value(self, key: str) -> str:
        """
        Look up key, decrypting it if it holds a protected value.

        Raises:
            KeyNotFoundError: If key is not present in the bound configuration
        """
        config_value = self._configuration.get(key)
        if config_value is None:
            raise KeyNotFoundError(key)

        result = self.codec.decrypt(config_value)
        return result.value if result.ok else config_value
