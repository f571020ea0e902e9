"""
Manifest Storage Module

Pluggable manifest persistence: transparency log, relational store behind
a REST service, and local filesystem.
"""

from .storage_backend import StorageBackend, manifest_metadata
from .filesystem import FilesystemStorage
from .database import DatabaseStorage
from .rekor import RekorStorage
from .registry import create_storage, create_storage_from_config

__all__ = [
    'StorageBackend',
    'manifest_metadata',
    'FilesystemStorage',
    'DatabaseStorage',
    'RekorStorage',
    'create_storage',
    'create_storage_from_config',
]
