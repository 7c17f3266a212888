"""Runtime configuration model for dumpvault.

This module owns YAML config parsing, environment interpolation, and
validation. Other modules consume typed config objects instead of raw maps.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
import re
from typing import Literal, Mapping, Sequence, cast

from core.constants import (
    DEFAULT_AWS_REGION,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_GCP_ENDPOINT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_RANDOM_SEED,
    LOG_LEVELS,
)
from core.errors import VaultConfigError, VaultDependencyError
from core.types import TransformerRule

_ENV_REFERENCE = re.compile(r"\$[A-Za-z_][A-Za-z0-9_]*")

ConnectionKind = Literal["sqlite", "jsonl"]
SUPPORTED_CONNECTION_KINDS: tuple[ConnectionKind, ...] = ("sqlite", "jsonl")
S3Flavor = Literal["aws", "gcp"]


@dataclass(frozen=True)
class LocalDiskConfig:
    """Local filesystem datastore settings."""

    directory: Path


@dataclass(frozen=True)
class S3Config:
    """S3-compatible object storage settings.

    Attributes:
        flavor: ``aws`` or ``gcp`` (GCS interoperability endpoint).
        bucket: Bucket name.
        region: Bucket region.
        profile: Optional AWS profile for boto3 session initialization.
        access_key_id: Optional static access key.
        secret_access_key: Optional static secret.
        session_token: Optional session token.
        endpoint: Optional custom endpoint URL.
        prefix: Optional key prefix inside the bucket.
    """

    flavor: S3Flavor
    bucket: str
    region: str
    profile: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    session_token: str | None = None
    endpoint: str | None = None
    prefix: str = ""


DatastoreConfig = LocalDiskConfig | S3Config


@dataclass(frozen=True)
class ConnectionConfig:
    """Source or destination connection settings."""

    kind: ConnectionKind
    path: Path


@dataclass(frozen=True)
class SourceConfig:
    """Dump source settings."""

    connection: ConnectionConfig
    database: str | None = None
    compression: bool = True
    encryption_key: str | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    tables: tuple[str, ...] = ()
    rules: tuple[TransformerRule, ...] = ()


@dataclass(frozen=True)
class DestinationConfig:
    """Restore destination settings."""

    connection: ConnectionConfig
    encryption_key: str | None = None


@dataclass(frozen=True)
class VaultConfig:
    """Validated runtime configuration.

    Attributes:
        datastore: Datastore backend selection and parameters.
        source: Optional dump source settings.
        destination: Optional restore destination settings.
        random_seed: Seed used for deterministic anonymization.
        log_level: Minimum log level name.
    """

    datastore: DatastoreConfig
    source: SourceConfig | None = None
    destination: DestinationConfig | None = None
    random_seed: int = DEFAULT_RANDOM_SEED
    log_level: str = DEFAULT_LOG_LEVEL
    config_dir: Path = field(default_factory=Path.cwd)

    @classmethod
    def load(cls, config_path: str) -> "VaultConfig":
        """Load and validate a YAML config file from disk.

        Args:
            config_path: File path to YAML config.

        Returns:
            A validated config object.

        Raises:
            VaultDependencyError: If PyYAML is unavailable.
            VaultConfigError: If file is invalid or schema checks fail.
        """
        config_file = Path(config_path).expanduser().resolve()
        payload = _load_yaml_payload(config_file)
        return cls.from_mapping(_expect_mapping(payload, "config root"), config_file.parent)

    @classmethod
    def from_mapping(
        cls,
        payload: Mapping[str, object],
        config_dir: Path | None = None,
    ) -> "VaultConfig":
        """Build config from a parsed mapping and environment overrides.

        Args:
            payload: Parsed config mapping.
            config_dir: Directory relative paths are resolved against.

        Returns:
            A validated config object.

        Raises:
            VaultConfigError: If values are invalid.
        """
        base_dir = config_dir or Path.cwd()
        resolved = cast(Mapping[str, object], _interpolate_env(payload, "config"))
        if "datastore" not in resolved:
            raise VaultConfigError(
                "Config is missing the 'datastore' section. "
                "Configure local_disk, aws, or gcp storage."
            )
        datastore = _parse_datastore(resolved["datastore"], base_dir)
        source = None
        if resolved.get("source") is not None:
            source = _parse_source(resolved["source"], base_dir)
        destination = None
        if resolved.get("destination") is not None:
            destination = _parse_destination(resolved["destination"], base_dir)
        seed_value = os.getenv("DUMPVAULT_SEED", resolved.get("seed", DEFAULT_RANDOM_SEED))
        log_level = os.getenv("DUMPVAULT_LOG_LEVEL", resolved.get("log_level", DEFAULT_LOG_LEVEL))
        return cls(
            datastore=datastore,
            source=source,
            destination=destination,
            random_seed=_parse_random_seed(seed_value),
            log_level=_parse_log_level(log_level),
            config_dir=base_dir,
        )


def _load_yaml_payload(config_file: Path) -> object:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise VaultDependencyError(
            "YAML config support requires PyYAML. Install with 'pip install pyyaml'."
        ) from error
    if not config_file.exists():
        raise VaultConfigError(
            f"Config file does not exist at {config_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(config_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise VaultConfigError(
            f"Failed to read config at {config_file}: {error}. Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise VaultConfigError(
            f"Failed to parse YAML config at {config_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise VaultConfigError(f"Config at {config_file} is empty. Define a 'datastore' section.")
    return payload


def _interpolate_env(value: object, context: str) -> object:
    """Resolve ``$NAME`` string values from the process environment.

    Only a whole value shaped like an environment variable name is resolved, so
    regex patterns such as ``$^`` pass through. A leading ``$$`` yields a
    literal ``$``.
    """
    if isinstance(value, str) and value.startswith("$$"):
        return value[1:]
    if isinstance(value, str) and _ENV_REFERENCE.fullmatch(value):
        env_name = value[1:]
        env_value = os.getenv(env_name)
        if env_value is None:
            raise VaultConfigError(
                f"Config field '{context}' references environment variable '{env_name}', "
                "which is not set. Export it, inline the value, or write '$$' for a literal '$'."
            )
        return env_value
    if isinstance(value, Mapping):
        return {
            key: _interpolate_env(item, f"{context}.{key}") for key, item in value.items()
        }
    if isinstance(value, list):
        return [_interpolate_env(item, f"{context}[{index}]") for index, item in enumerate(value)]
    return value


def _parse_datastore(value: object, base_dir: Path) -> DatastoreConfig:
    mapping = _expect_mapping(value, "datastore")
    backends = [name for name in ("local_disk", "aws", "gcp") if mapping.get(name) is not None]
    if len(backends) != 1:
        raise VaultConfigError(
            "Config section 'datastore' must define exactly one of local_disk, aws, gcp; "
            f"found {backends or 'none'}."
        )
    backend = backends[0]
    section = _expect_mapping(mapping[backend], f"datastore.{backend}")
    if backend == "local_disk":
        directory = _required_string(section, "dir", "datastore.local_disk")
        return LocalDiskConfig(directory=_resolve_path(directory, base_dir))
    credentials = _expect_mapping(section.get("credentials") or {}, f"datastore.{backend}.credentials")
    if backend == "aws":
        return S3Config(
            flavor="aws",
            bucket=_required_string(section, "bucket", "datastore.aws"),
            region=_optional_string(section, "region", "datastore.aws") or DEFAULT_AWS_REGION,
            profile=_optional_string(section, "profile", "datastore.aws"),
            access_key_id=_optional_string(credentials, "access_key_id", "datastore.aws.credentials"),
            secret_access_key=_optional_string(
                credentials, "secret_access_key", "datastore.aws.credentials"
            ),
            session_token=_optional_string(credentials, "session_token", "datastore.aws.credentials"),
            endpoint=_optional_string(section, "endpoint", "datastore.aws"),
            prefix=_optional_string(section, "prefix", "datastore.aws") or "",
        )
    return S3Config(
        flavor="gcp",
        bucket=_required_string(section, "bucket", "datastore.gcp"),
        region=_required_string(section, "region", "datastore.gcp"),
        access_key_id=_required_string(section, "access_key", "datastore.gcp"),
        secret_access_key=_required_string(section, "secret", "datastore.gcp"),
        endpoint=_optional_string(section, "endpoint", "datastore.gcp") or DEFAULT_GCP_ENDPOINT,
        prefix=_optional_string(section, "prefix", "datastore.gcp") or "",
    )


def _parse_connection(value: object, context: str, base_dir: Path) -> ConnectionConfig:
    mapping = _expect_mapping(value, context)
    kind = _required_string(mapping, "kind", context)
    if kind not in SUPPORTED_CONNECTION_KINDS:
        supported = ", ".join(SUPPORTED_CONNECTION_KINDS)
        raise VaultConfigError(
            f"Unsupported connection kind '{kind}' in {context}. Choose one of: {supported}."
        )
    raw_path = _optional_string(mapping, "path", context) or _optional_string(mapping, "dir", context)
    if raw_path is None:
        raise VaultConfigError(f"Config field '{context}.path' is required.")
    return ConnectionConfig(kind=cast(ConnectionKind, kind), path=_resolve_path(raw_path, base_dir))


def _parse_source(value: object, base_dir: Path) -> SourceConfig:
    mapping = _expect_mapping(value, "source")
    connection = _parse_connection(mapping.get("connection"), "source.connection", base_dir)
    chunk_size = mapping.get("chunk_size", DEFAULT_CHUNK_SIZE)
    if not isinstance(chunk_size, int) or isinstance(chunk_size, bool) or chunk_size < 1:
        raise VaultConfigError(
            f"Config field 'source.chunk_size' must be a positive integer, got {chunk_size!r}."
        )
    tables = tuple(
        str(table) for table in _expect_sequence(mapping.get("tables") or [], "source.tables")
    )
    return SourceConfig(
        connection=connection,
        database=_optional_string(mapping, "database", "source"),
        compression=_optional_bool(mapping, "compression", "source", default=True),
        encryption_key=_optional_key(mapping, "source"),
        chunk_size=chunk_size,
        tables=tables,
        rules=_parse_rules(mapping.get("transformers") or []),
    )


def _parse_destination(value: object, base_dir: Path) -> DestinationConfig:
    mapping = _expect_mapping(value, "destination")
    return DestinationConfig(
        connection=_parse_connection(
            mapping.get("connection"), "destination.connection", base_dir
        ),
        encryption_key=_optional_key(mapping, "destination"),
    )


def _parse_rules(value: object) -> tuple[TransformerRule, ...]:
    """Flatten table-level transformer sections into column rules."""
    rules: list[TransformerRule] = []
    for table_index, raw_table in enumerate(_expect_sequence(value, "source.transformers")):
        context = f"source.transformers[{table_index}]"
        table_section = _expect_mapping(raw_table, context)
        table = _required_string(table_section, "table", context)
        database = _optional_string(table_section, "database", context)
        columns = _expect_sequence(table_section.get("columns") or [], f"{context}.columns")
        for column_index, raw_column in enumerate(columns):
            column_context = f"{context}.columns[{column_index}]"
            column_section = _expect_mapping(raw_column, column_context)
            options = _expect_mapping(
                column_section.get("transformer_options") or {},
                f"{column_context}.transformer_options",
            )
            rules.append(
                TransformerRule(
                    table=table,
                    column=_required_string(column_section, "name", column_context),
                    transformer=_required_string(
                        column_section, "transformer_name", column_context
                    ),
                    database=database,
                    options=dict(options),
                )
            )
    return tuple(rules)


def _resolve_path(raw_path: str, base_dir: Path) -> Path:
    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise VaultConfigError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise VaultConfigError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise VaultConfigError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _required_string(mapping: Mapping[str, object], key: str, context: str) -> str:
    value = mapping.get(key)
    if not isinstance(value, str) or not value.strip():
        raise VaultConfigError(f"Config field '{context}.{key}' must be a non-empty string.")
    return value


def _optional_string(mapping: Mapping[str, object], key: str, context: str) -> str | None:
    value = mapping.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise VaultConfigError(
            f"Config field '{context}.{key}' must be a string, got {type(value).__name__}."
        )
    return value


def _optional_key(mapping: Mapping[str, object], context: str) -> str | None:
    """Read an encryption key; an empty key would seal dumps that cannot be restored."""
    key = _optional_string(mapping, "encryption_key", context)
    if key is not None and not key:
        raise VaultConfigError(
            f"Config field '{context}.encryption_key' is empty. "
            "Export a non-empty key or remove the field to disable encryption."
        )
    return key


def _optional_bool(
    mapping: Mapping[str, object], key: str, context: str, default: bool
) -> bool:
    value = mapping.get(key, default)
    if not isinstance(value, bool):
        raise VaultConfigError(
            f"Config field '{context}.{key}' must be true or false, got {value!r}."
        )
    return value


def _parse_random_seed(raw_value: object) -> int:
    """Parse the anonymization seed value.

    Args:
        raw_value: Raw seed from config file or environment.

    Returns:
        Parsed integer seed.

    Raises:
        VaultConfigError: If value cannot be parsed into int.
    """
    if isinstance(raw_value, bool):
        raise VaultConfigError(f"Invalid seed value {raw_value!r}: expected integer.")
    try:
        return int(cast(str, raw_value))
    except (TypeError, ValueError) as error:
        raise VaultConfigError(
            "Invalid seed value: "
            f"expected integer, got '{raw_value}'. "
            "Set 'seed' or DUMPVAULT_SEED to a numeric value."
        ) from error


def _parse_log_level(raw_value: object) -> str:
    level = str(raw_value).lower().strip()
    if level not in LOG_LEVELS:
        supported = ", ".join(LOG_LEVELS)
        raise VaultConfigError(f"Unsupported log level '{raw_value}'. Choose one of: {supported}.")
    return level
