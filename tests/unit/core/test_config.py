"""Unit tests for core config parsing."""

from __future__ import annotations

from pathlib import Path

import pytest

from core.config import LocalDiskConfig, S3Config, VaultConfig
from core.errors import VaultConfigError

_CONFIG_YAML = """
datastore:
  local_disk:
    dir: ./dumps
source:
  connection:
    kind: sqlite
    path: prod.db
  database: main
  encryption_key: $DUMP_KEY
  chunk_size: 1024
  tables: [users]
  transformers:
    - database: main
      table: users
      columns:
        - name: email
          transformer_name: email
        - name: ssn
          transformer_name: redacted
          transformer_options:
            width: 4
destination:
  connection:
    kind: jsonl
    dir: restored
seed: 7
"""


def test_load_parses_replibyte_shaped_yaml(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should parse datastore, source rules, and destination."""
    monkeypatch.setenv("DUMP_KEY", "secret")
    monkeypatch.delenv("DUMPVAULT_SEED", raising=False)
    config_path = tmp_path / "conf.yaml"
    config_path.write_text(_CONFIG_YAML, encoding="utf-8")

    config = VaultConfig.load(str(config_path))

    assert config.datastore == LocalDiskConfig(directory=(tmp_path / "dumps").resolve())
    assert config.source is not None
    assert config.source.encryption_key == "secret"
    assert config.source.chunk_size == 1024
    assert [(rule.column, rule.transformer) for rule in config.source.rules] == [
        ("email", "email"),
        ("ssn", "redacted"),
    ]
    assert config.source.rules[1].options == {"width": 4}
    assert config.destination is not None
    assert config.destination.connection.path == (tmp_path / "restored").resolve()
    assert config.random_seed == 7


def test_from_mapping_requires_one_datastore_backend() -> None:
    """Config should reject ambiguous datastore sections."""
    payload = {"datastore": {"local_disk": {"dir": "a"}, "aws": {"bucket": "b"}}}

    with pytest.raises(VaultConfigError):
        VaultConfig.from_mapping(payload)


def test_from_mapping_parses_gcp_datastore(tmp_path) -> None:
    """GCP datastores should default to the S3 interoperability endpoint."""
    payload = {
        "datastore": {
            "gcp": {"bucket": "dumps", "region": "us-central1", "access_key": "a", "secret": "s"}
        }
    }

    config = VaultConfig.from_mapping(payload, tmp_path)

    assert isinstance(config.datastore, S3Config)
    assert config.datastore.flavor == "gcp"
    assert config.datastore.endpoint == "https://storage.googleapis.com"


def test_from_mapping_raises_for_missing_env_reference(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail when a $VAR reference is not exported."""
    monkeypatch.delenv("DUMPVAULT_MISSING_BUCKET", raising=False)
    payload = {"datastore": {"aws": {"bucket": "$DUMPVAULT_MISSING_BUCKET"}}}

    with pytest.raises(VaultConfigError):
        VaultConfig.from_mapping(payload)


def test_from_mapping_raises_for_invalid_seed(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-numeric random seed."""
    monkeypatch.setenv("DUMPVAULT_SEED", "not-a-number")

    with pytest.raises(VaultConfigError):
        VaultConfig.from_mapping({"datastore": {"local_disk": {"dir": "dumps"}}})


def test_from_mapping_applies_log_level_override(monkeypatch: pytest.MonkeyPatch) -> None:
    """Environment log level should override the file value."""
    monkeypatch.setenv("DUMPVAULT_LOG_LEVEL", "DEBUG")

    config = VaultConfig.from_mapping(
        {"datastore": {"local_disk": {"dir": "dumps"}}, "log_level": "error"}, Path("/tmp")
    )

    assert config.log_level == "debug"


def test_from_mapping_rejects_unknown_connection_kind(tmp_path) -> None:
    """Config should reject unsupported connection kinds."""
    payload = {
        "datastore": {"local_disk": {"dir": "dumps"}},
        "source": {"connection": {"kind": "oracle", "path": "x"}},
    }

    with pytest.raises(VaultConfigError):
        VaultConfig.from_mapping(payload, tmp_path)


def test_load_raises_for_missing_file(tmp_path) -> None:
    """Config should fail clearly when the file does not exist."""
    with pytest.raises(VaultConfigError):
        VaultConfig.load(str(tmp_path / "missing.yaml"))


@pytest.mark.parametrize("section", ["source", "destination"])
def test_from_mapping_rejects_empty_encryption_key(
    tmp_path, monkeypatch: pytest.MonkeyPatch, section: str
) -> None:
    """An exported but empty key should not enable encryption."""
    monkeypatch.setenv("DUMP_KEY", "")
    payload = {
        "datastore": {"local_disk": {"dir": "dumps"}},
        section: {"connection": {"kind": "sqlite", "path": "x.db"}, "encryption_key": "$DUMP_KEY"},
    }

    with pytest.raises(VaultConfigError, match="encryption_key"):
        VaultConfig.from_mapping(payload, tmp_path)


def test_from_mapping_keeps_regex_patterns_literal(tmp_path) -> None:
    """Dollar-prefixed values that are not variable names stay untouched."""
    payload = {
        "datastore": {"local_disk": {"dir": "dumps"}},
        "source": {
            "connection": {"kind": "sqlite", "path": "x.db"},
            "transformers": [
                {
                    "table": "users",
                    "columns": [
                        {
                            "name": "note",
                            "transformer_name": "regex",
                            "transformer_options": {"pattern": "$^", "replacement": "x"},
                        }
                    ],
                }
            ],
        },
    }

    config = VaultConfig.from_mapping(payload, tmp_path)

    assert config.source is not None
    assert config.source.rules[0].options == {"pattern": "$^", "replacement": "x"}


def test_from_mapping_unescapes_double_dollar(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A leading '$$' yields a literal '$' without reading the environment."""
    monkeypatch.delenv("DUMPVAULT_LITERAL", raising=False)
    payload = {"datastore": {"aws": {"bucket": "$$DUMPVAULT_LITERAL"}}}

    config = VaultConfig.from_mapping(payload, tmp_path)

    assert isinstance(config.datastore, S3Config)
    assert config.datastore.bucket == "$DUMPVAULT_LITERAL"
