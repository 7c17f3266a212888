"""Explicit runtime context shared by the service layers.

The context is built once per process run and handed to the datastore
factory, transformer engine, and orchestrator instead of ambient globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from core.config import VaultConfig
from core.logging_config import configure_logging, get_logger


@dataclass(frozen=True)
class RuntimeContext:
    """Configuration, seed, and logger for one process run."""

    config: VaultConfig
    seed: int
    logger: Any


def build_runtime_context(config: VaultConfig) -> RuntimeContext:
    """Configure logging and build the runtime context.

    Args:
        config: Validated runtime configuration.

    Returns:
        Context object passed into service constructors.
    """
    configure_logging(config.log_level)
    return RuntimeContext(
        config=config,
        seed=config.random_seed,
        logger=get_logger("dumpvault"),
    )
