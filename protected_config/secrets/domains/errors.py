"""Exceptions raised by protected-config."""


class ProtectedConfigError(Exception):
    """Base class for protected-config errors."""
    pass


class ConfigError(ProtectedConfigError):
    """Tool settings are invalid or a configured key secret is unavailable."""
    pass


class KeyNotFoundError(ProtectedConfigError, KeyError):
    """Configuration key is absent from the merged configuration."""

    def __init__(self, key: str):
        super().__init__(f"No value found for the key '{key}'")
        self.key = key

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class EncryptionError(ProtectedConfigError):
    """Unexpected failure while protecting a value."""
    pass


class SecretsDocumentError(ProtectedConfigError):
    """Secrets document could not be parsed."""
    pass
