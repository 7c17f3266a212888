"""Core constants used across dumpvault modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

DEFAULT_CONFIG_FILE_NAME = "conf.yaml"
DEFAULT_CHUNK_SIZE = 100 * 1024 * 1024
DEFAULT_RANDOM_SEED = 42
DEFAULT_LOG_LEVEL = "info"
DEFAULT_PROGRESS_QUEUE_CAPACITY = 1000
DEFAULT_PROGRESS_POLL_INTERVAL_SECONDS = 0.5
DEFAULT_RETRY_MAX_ATTEMPTS = 5
DEFAULT_RETRY_INITIAL_DELAY_SECONDS = 0.5
DEFAULT_RETRY_BACKOFF_FACTOR = 2.0
DEFAULT_RETRY_MAX_DELAY_SECONDS = 8.0
DEFAULT_GCP_ENDPOINT = "https://storage.googleapis.com"
DEFAULT_AWS_REGION = "us-east-2"
LATEST_DUMP_ALIAS = "latest"
DUMP_NAME_PREFIX = "dump"
METADATA_PREFIX = "metadata"
VERSION_MARKER_NAME = "__version"
LEGACY_INDEX_KEY = "metadata.json"
CURRENT_FORMAT_VERSION = 2
TEMP_FILE_PREFIX = ".tmp-"
READ_BLOCK_SIZE = 64 * 1024
ENCRYPTION_NONCE_SIZE = 12
BYTES_MARKER_FIELD = "$bytes"
LOG_LEVELS = ("debug", "info", "warning", "error")
