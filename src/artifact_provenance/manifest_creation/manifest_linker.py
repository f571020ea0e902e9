"""
Manifest Linker Module

Pins references to previously stored manifests by the digest of their
canonical JSON. Links requested while a manifest is being created are
best-effort; an explicit ``link_manifest`` call is not.
"""

import logging
from typing import List, Optional

from .. import hashing
from ..errors import ProvenanceError, StorageError
from ..models import CrossReference, Manifest

logger = logging.getLogger(__name__)

CROSS_REFERENCE_MEDIA_TYPE = "application/json"


def manifest_digest(manifest: Manifest) -> str:
    """Digest of a manifest's canonical JSON encoding."""
    return hashing.digest(manifest.canonical_json())


def cross_reference_to(storage, target_id: str) -> CrossReference:
    """Retrieve ``target_id`` and build a cross-reference pinned to its current content."""
    target = storage.retrieve_manifest(target_id)
    return CrossReference(
        manifest_url=target_id,
        manifest_hash=manifest_digest(target),
        media_type=CROSS_REFERENCE_MEDIA_TYPE,
    )


def link_manifests(manifest: Manifest,
                   linked_ids: Optional[List[str]],
                   storage=None) -> Manifest:
    """
    Append cross-references for each linked id that can be resolved.

    A link that cannot be resolved is skipped with a warning.

    Args:
        manifest: Manifest being created
        linked_ids: Ids of manifests to reference
        storage: Backend to resolve ids against

    Returns:
        The same manifest, with cross-references appended
    """
    if not linked_ids:
        return manifest

    if storage is None:
        logger.warning("Cannot link manifests without a storage backend")
        return manifest

    for linked_id in linked_ids:
        try:
            cross_ref = cross_reference_to(storage, linked_id)
        except ProvenanceError as e:
            logger.warning("Could not link to manifest %s: %s", linked_id, e)
            continue
        manifest.cross_references.append(cross_ref)
        logger.info("Added link to manifest: %s", linked_id)

    return manifest


def link_manifest(storage, source_id: str, target_id: str) -> Manifest:
    """
    Add a cross-reference from one stored manifest to another and re-store it.

    This is a read-modify-write against the backend: a concurrent writer to
    ``source_id`` can overwrite the update.

    Args:
        storage: Backend holding both manifests
        source_id: Manifest that receives the reference
        target_id: Manifest being referenced

    Returns:
        The updated source manifest
    """
    source = storage.retrieve_manifest(source_id)
    try:
        cross_ref = cross_reference_to(storage, target_id)
    except StorageError as e:
        raise StorageError(f"Cannot link {source_id} to {target_id}: {e.message}") from e

    source.cross_references.append(cross_ref)
    storage.store_manifest(source)
    logger.info("Linked manifest %s -> %s", source_id, target_id)
    return source
