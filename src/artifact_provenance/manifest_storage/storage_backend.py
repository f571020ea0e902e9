"""
Storage Backend Module

Common contract implemented by every manifest storage backend.
"""

from abc import ABC, abstractmethod
from typing import List

from ..models import Manifest, ManifestMetadata
from ..verification.kind_inference import infer_kind


class StorageBackend(ABC):
    """Abstract base class for manifest storage backends."""

    @abstractmethod
    def store_manifest(self, manifest: Manifest) -> str:
        """Store a manifest under its ``instance_id``; last write wins. Returns the id."""
        pass

    @abstractmethod
    def retrieve_manifest(self, manifest_id: str) -> Manifest:
        """Retrieve a manifest by id. Raises ManifestNotFoundError if absent."""
        pass

    @abstractmethod
    def list_manifests(self) -> List[ManifestMetadata]:
        """List metadata for every stored manifest. Order is backend-specific."""
        pass

    @abstractmethod
    def delete_manifest(self, manifest_id: str) -> None:
        """Delete a manifest by id. Raises ManifestNotFoundError if absent."""
        pass


def manifest_metadata(manifest: Manifest, manifest_id: str = None) -> ManifestMetadata:
    """Listing projection of a manifest, with the kind inferred from content."""
    return ManifestMetadata(
        id=manifest_id or manifest.instance_id,
        name=manifest.title,
        manifest_type=infer_kind(manifest),
        created_at=manifest.created_at.isoformat(),
    )
