"""Tests for binding configuration and resolving values."""
import datetime
import json

import pytest

from protected_config.secrets.domains.errors import ConfigError, KeyNotFoundError, SecretsDocumentError
from protected_config.secrets.domains.merged import FileSource, MappingSource, MergedConfiguration, flatten
from protected_config.secrets.workflows.configuration import ProtectedConfiguration


@pytest.fixture
def secrets_file(tmp_path):
    path = tmp_path / "appsettings.secrets.json"
    path.write_text('{"A":"pw1","B":{"C":"pw2"}}', encoding="utf-8")
    return path


class TestBindAndResolve:
    """bind() protects the secrets file; get_value() reveals it."""

    def test_example_lookup(self, codec, secrets_file):
        config = ProtectedConfiguration(codec, secrets_file)
        config.bind({})

        assert config.get_value("A") == "pw1"
        assert config.get_value("B:C") == "pw2"

        stored = json.loads(secrets_file.read_text(encoding="utf-8"))
        assert codec.is_protected(stored["A"])
        assert config.configuration.get("A") == stored["A"]

    def test_plaintext_value_returned_unchanged(self, codec, secrets_file):
        config = ProtectedConfiguration(codec, secrets_file)
        config.bind({"Logging": {"Level": "Information"}})

        assert config.get_value("Logging:Level") == "Information"

    def test_blank_value_returned_unchanged(self, codec, tmp_path):
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps({"Empty": "", "Spaces": "  "}), encoding="utf-8")
        config = ProtectedConfiguration(codec, path)
        config.bind(None)

        assert config.get_value("Empty") == ""
        assert config.get_value("Spaces") == "  "

    def test_missing_key_raises(self, codec, secrets_file):
        config = ProtectedConfiguration(codec, secrets_file)
        config.bind({})

        with pytest.raises(KeyNotFoundError) as exc_info:
            config.get_value("Missing:Key")

        assert "Missing:Key" in str(exc_info.value)
        assert isinstance(exc_info.value, KeyError)

    def test_lookup_before_bind_raises(self, codec, secrets_file):
        with pytest.raises(KeyNotFoundError):
            ProtectedConfiguration(codec, secrets_file).get_value("A")

    def test_keys_case_insensitive(self, codec, secrets_file):
        config = ProtectedConfiguration(codec, secrets_file)
        config.bind({})
        assert config.get_value("b:c") == "pw2"

    def test_secrets_override_base(self, codec, secrets_file):
        config = ProtectedConfiguration(codec, secrets_file)
        config.bind({"A": "from-base", "Other": "kept"})

        assert config.get_value("A") == "pw1"
        assert config.get_value("Other") == "kept"

    def test_missing_secrets_file(self, codec, tmp_path):
        """Without a secrets file the base configuration is used as-is."""
        path = tmp_path / "absent.json"
        config = ProtectedConfiguration(codec, path)
        config.bind({"A": "base"})

        assert config.get_value("A") == "base"
        assert not path.exists()

    def test_malformed_secrets_file_raises(self, codec, tmp_path):
        path = tmp_path / "secrets.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(SecretsDocumentError):
            ProtectedConfiguration(codec, path).bind({})

    def test_rebind_picks_up_new_plaintext(self, codec, secrets_file):
        """A value edited in plaintext is protected on the next bind."""
        config = ProtectedConfiguration(codec, secrets_file)
        config.bind({})

        stored = json.loads(secrets_file.read_text(encoding="utf-8"))
        stored["A"] = "rotated"
        secrets_file.write_text(json.dumps(stored), encoding="utf-8")

        config.bind({})

        assert config.get_value("A") == "rotated"
        assert codec.is_protected(json.loads(secrets_file.read_text(encoding="utf-8"))["A"])

    def test_bind_over_merged_view(self, codec, secrets_file, tmp_path):
        base_file = tmp_path / "appsettings.json"
        base_file.write_text(json.dumps({"Api": {"Url": "https://example.test"}}), encoding="utf-8")
        base = MergedConfiguration([FileSource(base_file, optional=False)])

        config = ProtectedConfiguration(codec, secrets_file)
        merged = config.bind(base)

        assert merged is config.configuration
        assert len(merged.sources) == 2
        assert config.get_value("Api:Url") == "https://example.test"
        assert config.get_value("A") == "pw1"

    def test_rebinding_own_view_does_not_stack_secrets(self, codec, secrets_file):
        config = ProtectedConfiguration(codec, secrets_file)
        config.bind({"Other": "kept"})

        for _ in range(5):
            config.bind(config.configuration)

        assert len(config.configuration.sources) == 2
        assert config.get_value("A") == "pw1"
        assert config.get_value("Other") == "kept"

    def test_yaml_dates_resolve_as_text(self, codec, tmp_path):
        path = tmp_path / "secrets.yml"
        path.write_text("Password: pw1\nIssued: 2024-01-01\n", encoding="utf-8")
        config = ProtectedConfiguration(codec, path)
        config.bind({})

        assert config.get_value("Issued") == "2024-01-01"
        assert config.get_value("Password") == "pw1"

    def test_from_settings(self, machine_env, temp_home, secrets_file, codec, monkeypatch):
        monkeypatch.setenv("PROTECTED_CONFIG_SECRETS_PATH", str(secrets_file))

        config = ProtectedConfiguration.from_settings()
        config.bind({})

        assert config.secrets_path == secrets_file
        assert config.get_value("B:C") == "pw2"
        assert codec.is_protected(json.loads(secrets_file.read_text(encoding="utf-8"))["A"])


class TestMergedConfiguration:
    """The minimal merged view."""

    def test_flatten(self):
        document = {
            "S": "text",
            "N": 5,
            "F": 2.5,
            "T": True,
            "Z": None,
            "L": ["a", {"K": "v"}],
            "E": {},
        }
        assert flatten(document) == {
            "S": "text",
            "N": "5",
            "F": "2.5",
            "T": "true",
            "Z": "",
            "L:0": "a",
            "L:1:K": "v",
        }

    def test_later_sources_win(self):
        merged = MergedConfiguration([
            MappingSource({"A": "1", "B": "1"}),
            MappingSource({"a": "2"}),
        ])
        assert merged.get("A") == "2"
        assert merged.get("B") == "1"
        assert "b" in merged
        assert merged.get("C") is None

    def test_required_file_missing(self, tmp_path):
        with pytest.raises(ConfigError):
            MergedConfiguration([FileSource(tmp_path / "missing.json", optional=False)])

    def test_optional_file_missing(self, tmp_path):
        merged = MergedConfiguration([FileSource(tmp_path / "missing.json")])
        assert len(merged) == 0

    def test_reload(self, tmp_path):
        path = tmp_path / "settings.yml"
        path.write_text("A: one\n", encoding="utf-8")
        merged = MergedConfiguration([FileSource(path)])
        assert merged.get("A") == "one"

        path.write_text("A: two\n", encoding="utf-8")
        assert merged.get("A") == "one"
        merged.reload()
        assert merged.get("A") == "two"

    def test_from_base(self):
        base = MergedConfiguration([MappingSource({"A": "1"})])
        layered = MergedConfiguration.from_base(base, MappingSource({"B": "2"}))

        assert layered.get("A") == "1"
        assert layered.get("B") == "2"
        assert len(base.sources) == 1

    def test_from_base_moves_repeated_file_to_top(self, tmp_path):
        path = tmp_path / "secrets.json"
        path.write_text(json.dumps({"A": "file"}), encoding="utf-8")
        base = MergedConfiguration([FileSource(path), MappingSource({"A": "mapping"})])

        layered = MergedConfiguration.from_base(base, FileSource(tmp_path / "." / "secrets.json"))

        assert len(layered.sources) == 2
        assert isinstance(layered.sources[0], MappingSource)
        assert layered.get("A") == "file"

    def test_flatten_timestamps_and_binary(self):
        document = {
            "Day": datetime.date(2024, 1, 1),
            "At": datetime.datetime(2024, 1, 1, 12, 30),
            "Blob": b"\x00\x01",
        }
        assert flatten(document) == {
            "Day": "2024-01-01",
            "At": "2024-01-01T12:30:00",
            "Blob": "AAE=",
        }
