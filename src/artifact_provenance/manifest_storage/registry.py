"""
Storage Registry Module

Selects a storage backend from a configuration string.
"""

import logging
from typing import Optional

from ..config import ProvenanceConfig
from ..errors import ValidationError
from .database import DatabaseStorage
from .filesystem import FilesystemStorage
from .rekor import RekorStorage
from .storage_backend import StorageBackend

logger = logging.getLogger(__name__)

VALID_STORAGE_TYPES = ("database", "rekor", "local-fs")

DEPRECATED_ALIASES = {
    "local": "database",
    "filesystem": "local-fs",
}


def create_storage(storage_type: str, url: str) -> StorageBackend:
    """
    Create a storage backend.

    Args:
        storage_type: 'database', 'rekor' or 'local-fs'. The deprecated
            aliases 'local' and 'filesystem' still work.
        url: Service URL, or directory path for 'local-fs'

    Returns:
        StorageBackend instance
    """
    if storage_type in DEPRECATED_ALIASES:
        replacement = DEPRECATED_ALIASES[storage_type]
        logger.warning(
            "Storage type '%s' is deprecated and will be removed in a future version. "
            "Use '%s' instead.", storage_type, replacement
        )
        storage_type = replacement

    if storage_type == "database":
        return DatabaseStorage(url)
    elif storage_type == "rekor":
        return RekorStorage(url)
    elif storage_type == "local-fs":
        return FilesystemStorage(url)

    raise ValidationError(
        "Invalid storage type. Valid options are: " + ", ".join(VALID_STORAGE_TYPES)
    )


def create_storage_from_config(config: Optional[ProvenanceConfig] = None) -> StorageBackend:
    """
    Create the storage backend named by a configuration.

    Rekor uses ``rekor_url`` and local-fs uses ``filesystem_path`` when set;
    everything else uses ``storage_url``.
    """
    config = config or ProvenanceConfig()
    storage_type = DEPRECATED_ALIASES.get(config.storage_type, config.storage_type)

    url = config.storage_url
    if storage_type == "rekor":
        url = config.rekor_url
    elif storage_type == "local-fs" and config.filesystem_path:
        url = config.filesystem_path

    return create_storage(config.storage_type, url)
