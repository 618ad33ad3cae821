"""Shared fixtures for the protected-config test suite."""
from pathlib import Path

import pytest

from protected_config.secrets.domains import preferences
from protected_config.secrets.domains.codec import ProtectionCodec
from protected_config.secrets.domains.machine_key import MACHINE_ID_ENV, derive_key

TEST_MACHINE_ID = "3f1c2a9e8d7b4c60a5e4f3d2c1b0a998"
OTHER_MACHINE_ID = "77aa66bb55cc44dd33ee22ff11009988"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host settings out of every test."""
    for name in ("PROTECTED_CONFIG_SECRETS_PATH", MACHINE_ID_ENV, "GCP_PROJECT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def machine_key_bytes():
    """Fernet key for TEST_MACHINE_ID, derived once per session."""
    return derive_key(TEST_MACHINE_ID)


@pytest.fixture
def codec(machine_key_bytes):
    return ProtectionCodec(machine_key_bytes)


@pytest.fixture(scope="session")
def other_machine_codec():
    return ProtectionCodec(derive_key(OTHER_MACHINE_ID))


@pytest.fixture
def machine_env(monkeypatch, clean_env):
    """Pin the machine identity used by ProtectionCodec.for_machine()."""
    monkeypatch.setenv(MACHINE_ID_ENV, TEST_MACHINE_ID)


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)

    fake_config_dir = fake_home / ".config" / "protected-config"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")

    return fake_home
