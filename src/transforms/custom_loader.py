"""Custom transformer loader.

This module loads user-provided Python transformer files.
It validates a transform(value, rng) callable contract.
"""

from __future__ import annotations

import importlib.util
from pathlib import Path
import random
from typing import Any, Callable, cast

from core.errors import VaultConfigError

CustomTransformCallable = Callable[[object, random.Random], object]


def load_custom_transform(custom_path: str) -> CustomTransformCallable:
    """Load a custom transformer callable from a Python file.

    Args:
        custom_path: Path to a Python file defining ``transform(value, rng)``.

    Returns:
        The transform callable.

    Raises:
        VaultConfigError: If path is invalid or callable is missing.
    """
    resolved_path = Path(custom_path).expanduser().resolve()
    if not resolved_path.exists():
        raise VaultConfigError(
            f"Custom transformer file not found at {resolved_path}. "
            "Set transformer_options.path to an existing .py file."
        )
    module = _load_python_module(resolved_path)
    transform_fn = getattr(module, "transform", None)
    if transform_fn is None or not callable(transform_fn):
        raise VaultConfigError(
            f"Invalid custom transformer file at {resolved_path}: "
            "missing callable transform(value, rng)."
        )
    return cast(CustomTransformCallable, transform_fn)


def _load_python_module(module_path: Path) -> Any:
    """Load Python module from file path."""
    spec = importlib.util.spec_from_file_location(
        f"dumpvault_custom_{module_path.stem}", str(module_path)
    )
    if spec is None or spec.loader is None:
        raise VaultConfigError(
            f"Failed to load custom transformer at {module_path}. Verify the file path and syntax."
        )
    module = importlib.util.module_from_spec(spec)
    try:
        spec.loader.exec_module(module)
    except Exception as error:
        raise VaultConfigError(
            f"Failed to import custom transformer at {module_path}: {error}."
        ) from error
    return module
