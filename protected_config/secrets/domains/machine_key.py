"""Machine-bound key material for the protection codec.

The protection key is derived from the identity of the executing machine, so a
value protected on one host cannot be read on another. An optional
platform-managed key secret can be mixed in; it is read from the environment
first and from GCP Secret Manager otherwise.
"""
import base64
import logging
import os
import platform
import uuid
from pathlib import Path
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config_loader import Settings
from .errors import ConfigError
from .gcp_client import GCPSecretClient

logger = logging.getLogger(__name__)

MACHINE_ID_ENV = "PROTECTED_CONFIG_MACHINE_ID"
MACHINE_ID_PATHS = (Path("/etc/machine-id"), Path("/var/lib/dbus/machine-id"))

KEY_SALT = b"protected-config/machine-key/v1"
KEY_ITERATIONS = 100_000


def _read_machine_id(path: Path) -> Optional[str]:
    try:
        value = path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return value or None


def get_machine_id(machine_id_path: Optional[Path] = None) -> str:
    """
    Resolve a stable identifier for this machine.

    Priority order:
    1. PROTECTED_CONFIG_MACHINE_ID environment variable
    2. machine_id_path from settings
    3. /etc/machine-id, /var/lib/dbus/machine-id
    4. Host name and hardware address

    Returns:
        Machine identifier string
    """
    env_value = os.getenv(MACHINE_ID_ENV)
    if env_value and env_value.strip():
        logger.debug(f"Using machine id from {MACHINE_ID_ENV}")
        return env_value.strip()

    candidates = ([machine_id_path] if machine_id_path else []) + list(MACHINE_ID_PATHS)
    for path in candidates:
        value = _read_machine_id(path)
        if value:
            logger.debug(f"Using machine id from {path}")
            return value
        if path == machine_id_path:
            logger.warning(f"Configured machine id file is missing or empty: {path}")

    logger.warning("No machine-id file found, deriving machine identity from host name and hardware address")
    return f"{platform.node()}:{uuid.getnode():012x}"


def get_key_secret(secret_name: str, project_id: Optional[str] = None,
                   client: Optional[GCPSecretClient] = None) -> bytes:
    """
    Fetch the platform-managed key secret.

    The environment variable named secret_name is checked first, then GCP
    Secret Manager.

    Raises:
        ConfigError: If the secret is configured but cannot be found
    """
    env_value = os.getenv(secret_name)
    if env_value:
        logger.debug(f"Using key secret {secret_name} from environment")
        return env_value.encode("utf-8")

    client = client or GCPSecretClient()
    resolved_project = client.resolve_project_id(project_id)
    if resolved_project:
        payload = client.fetch_secret(secret_name, resolved_project)
        if payload:
            logger.debug(f"Using key secret {secret_name} from GCP project {resolved_project}")
            return payload

    raise ConfigError(
        f"Protection key secret '{secret_name}' not found in environment or GCP Secret Manager.\n"
        f"Values protected with it cannot be read or written until it is available."
    )


def derive_key(machine_id: str, key_secret: bytes = b"") -> bytes:
    """Derive a urlsafe-base64 Fernet key from the machine id and optional key secret."""
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=KEY_SALT, iterations=KEY_ITERATIONS)
    material = machine_id.encode("utf-8") + b"\x00" + key_secret
    return base64.urlsafe_b64encode(kdf.derive(material))


def machine_key(settings: Settings, client: Optional[GCPSecretClient] = None) -> bytes:
    """Build the protection key described by settings."""
    machine_id = get_machine_id(settings.machine_id_path)
    key_secret = b""
    if settings.key_secret_name:
        key_secret = get_key_secret(settings.key_secret_name, settings.key_secret_project_id, client)
    return derive_key(machine_id, key_secret)
