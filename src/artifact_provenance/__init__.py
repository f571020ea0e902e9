"""
AI Artifact Provenance

Creates, cross-links and verifies provenance manifests for machine-learning
models, datasets, software and evaluation results.
"""

__version__ = "0.1.0"

from .errors import (
    ProvenanceError,
    ArtifactIOError,
    StorageError,
    ManifestNotFoundError,
    ValidationError,
    VerificationError,
    SerializationError,
    SigningError,
    AttestationError,
    HexDecodeError,
    format_error,
)
from .models import AssetKind, AssetType, Manifest, ManifestMetadata, ManifestType, parse_manifest_type
from .config import ProvenanceConfig, load_config

__all__ = [
    '__version__',
    'ProvenanceError',
    'ArtifactIOError',
    'StorageError',
    'ManifestNotFoundError',
    'ValidationError',
    'VerificationError',
    'SerializationError',
    'SigningError',
    'AttestationError',
    'HexDecodeError',
    'format_error',
    'AssetKind',
    'AssetType',
    'Manifest',
    'ManifestMetadata',
    'ManifestType',
    'parse_manifest_type',
    'ProvenanceConfig',
    'load_config',
]
