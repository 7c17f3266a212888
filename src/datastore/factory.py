"""Datastore backend selection from configuration."""

from __future__ import annotations

from core.config import DatastoreConfig, LocalDiskConfig
from core.context import RuntimeContext
from core.errors import VaultDependencyError
from datastore.base import Datastore
from datastore.local_disk import LocalDiskDatastore


def build_datastore(context: RuntimeContext) -> Datastore:
    """Build the configured datastore backend.

    Args:
        context: Runtime context holding the datastore config.

    Returns:
        Backend implementing the Datastore protocol.

    Raises:
        VaultDependencyError: If boto3 is missing for an S3 backend.
    """
    config: DatastoreConfig = context.config.datastore
    if isinstance(config, LocalDiskConfig):
        context.logger.debug("datastore_selected", backend="local_disk", dir=str(config.directory))
        return LocalDiskDatastore(config.directory)
    try:
        from datastore.s3_datastore import S3Datastore
    except ImportError as error:
        raise VaultDependencyError(
            "S3 datastores require boto3, but it is not installed. "
            "Install boto3 to use aws or gcp storage."
        ) from error
    context.logger.debug(
        "datastore_selected", backend=config.flavor, bucket=config.bucket, prefix=config.prefix
    )
    return S3Datastore.connect(config)
