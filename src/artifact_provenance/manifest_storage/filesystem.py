"""
Filesystem Storage Module

Local-filesystem manifest storage: one JSON file per manifest plus an
``index.json`` mapping manifest ids to files. Also exposes administrative
helpers for backup, export and size accounting.
"""

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Union

from .. import hashing
from ..errors import ManifestNotFoundError, SerializationError, StorageError
from ..models import Manifest, ManifestMetadata
from .locking import index_lock
from .storage_backend import StorageBackend, manifest_metadata

logger = logging.getLogger(__name__)

INDEX_FILE = "index.json"
LOCK_FILE = ".index.lock"


def manifest_file_name(manifest_id: str) -> str:
    """File name for a manifest id; distinct ids never share a file."""
    return f"{hashing.digest(manifest_id.encode('utf-8'))}.json"


def _atomic_write(path: Path, data: str) -> None:
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(data)
        os.replace(tmp_path, path)
    except OSError:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class FilesystemStorage(StorageBackend):
    """Local file system storage backend for manifests."""

    def __init__(self, storage_path: Union[str, Path] = "data/manifests"):
        self.storage_path = Path(storage_path)
        try:
            self.storage_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage directory {self.storage_path}: {e}") from e

        self.index_file = self.storage_path / INDEX_FILE
        self.lock_file = self.storage_path / LOCK_FILE
        with index_lock(self.lock_file):
            if not self.index_file.exists():
                self._save_index({"manifests": {}})

    def _load_index(self) -> Dict[str, Any]:
        try:
            with open(self.index_file, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise SerializationError(f"Corrupt index file {self.index_file}: {e}") from e
        except OSError as e:
            raise StorageError(f"Cannot read index file {self.index_file}: {e}") from e

    def _save_index(self, index_data: Dict[str, Any]) -> None:
        index_data["last_updated"] = datetime.now(timezone.utc).isoformat()
        try:
            _atomic_write(self.index_file, json.dumps(index_data, indent=2))
        except OSError as e:
            raise StorageError(f"Cannot write index file {self.index_file}: {e}") from e

    def _manifest_file(self, manifest_id: str) -> Path:
        return self.storage_path / manifest_file_name(manifest_id)

    def store_manifest(self, manifest: Manifest) -> str:
        """Write a manifest and update the index."""
        manifest_id = manifest.instance_id
        manifest_file = self._manifest_file(manifest_id)

        try:
            _atomic_write(manifest_file, manifest.to_json())
        except OSError as e:
            raise StorageError(f"Cannot write manifest {manifest_id}: {e}") from e

        with index_lock(self.lock_file):
            index_data = self._load_index()
            index_data["manifests"][manifest_id] = {
                "file": manifest_file.name,
                "title": manifest.title,
                "created_at": manifest.created_at.isoformat(),
            }
            self._save_index(index_data)

        logger.debug("Stored manifest %s in %s", manifest_id, manifest_file)
        return manifest_id

    def retrieve_manifest(self, manifest_id: str) -> Manifest:
        manifest_file = self._manifest_file(manifest_id)
        if not manifest_file.exists():
            raise ManifestNotFoundError(manifest_id)

        try:
            text = manifest_file.read_text()
        except OSError as e:
            raise StorageError(f"Cannot read manifest {manifest_id}: {e}") from e

        manifest = Manifest.from_json(text)
        if manifest.instance_id != manifest_id:
            raise StorageError(
                f"Stored file {manifest_file.name} holds manifest {manifest.instance_id}, "
                f"not {manifest_id}"
            )
        return manifest

    def list_manifests(self) -> List[ManifestMetadata]:
        """List indexed manifests; index entries whose file is gone are skipped."""
        with index_lock(self.lock_file):
            manifest_ids = list(self._load_index()["manifests"])

        listed = []
        for manifest_id in manifest_ids:
            try:
                manifest = self.retrieve_manifest(manifest_id)
            except ManifestNotFoundError:
                logger.warning("Index entry %s has no manifest file; skipping", manifest_id)
                continue
            listed.append(manifest_metadata(manifest, manifest_id))
        return listed

    def delete_manifest(self, manifest_id: str) -> None:
        manifest_file = self._manifest_file(manifest_id)

        with index_lock(self.lock_file):
            if not manifest_file.exists():
                raise ManifestNotFoundError(manifest_id)
            try:
                manifest_file.unlink()
            except OSError as e:
                raise StorageError(f"Cannot delete manifest {manifest_id}: {e}") from e

            index_data = self._load_index()
            if index_data["manifests"].pop(manifest_id, None) is not None:
                self._save_index(index_data)

    def manifest_exists(self, manifest_id: str) -> bool:
        return self._manifest_file(manifest_id).exists()

    def get_manifest_size(self, manifest_id: str) -> int:
        """Size in bytes of the stored manifest file."""
        manifest_file = self._manifest_file(manifest_id)
        if not manifest_file.exists():
            raise ManifestNotFoundError(manifest_id)
        return manifest_file.stat().st_size

    def backup(self, target_dir: Union[str, Path]) -> Path:
        """
        Copy the whole store, index included, into a timestamped directory.

        Args:
            target_dir: Directory that receives the backup

        Returns:
            Path of the created backup directory
        """
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        backup_dir = Path(target_dir) / f"manifests-backup-{timestamp}"
        try:
            with index_lock(self.lock_file):
                shutil.copytree(self.storage_path, backup_dir)
        except (OSError, shutil.Error) as e:
            raise StorageError(f"Backup to {backup_dir} failed: {e}") from e
        logger.info("Backed up manifest store to %s", backup_dir)
        return backup_dir

    def export_all(self, target_dir: Union[str, Path]) -> int:
        """
        Export every manifest as pretty-printed JSON.

        Returns:
            Number of manifests exported
        """
        target = Path(target_dir)
        count = 0
        try:
            target.mkdir(parents=True, exist_ok=True)
            for metadata in self.list_manifests():
                manifest = self.retrieve_manifest(metadata.id)
                (target / manifest_file_name(metadata.id)).write_text(manifest.to_json())
                count += 1
        except OSError as e:
            raise StorageError(f"Export to {target} failed: {e}") from e
        return count

    def get_total_storage_size(self) -> int:
        """Total size in bytes of all files in the store."""
        return sum(p.stat().st_size for p in self.storage_path.rglob("*") if p.is_file())
