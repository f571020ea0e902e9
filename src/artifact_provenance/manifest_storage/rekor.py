"""
Rekor Storage Module

Anchors manifests in a Rekor transparency log. A ``rekord`` entry only
retains the digest of its content, so the canonical manifest JSON is kept
in a local content-addressed directory and the log entry serves as the
tamper-evident record of that digest. A local index maps manifest ids to
entry UUIDs; the log is append-only, so deletion only forgets the mapping.
"""

import base64
import binascii
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests

from .. import hashing
from ..errors import ManifestNotFoundError, SerializationError, StorageError
from ..models import Manifest, ManifestMetadata
from ..signing.claim_signer import HashAlgorithm, sign_data
from ..signing.key_manager import PrivateKey, public_key_to_pem
from .filesystem import _atomic_write
from .locking import index_lock
from .storage_backend import StorageBackend, manifest_metadata

logger = logging.getLogger(__name__)

DEFAULT_REKOR_URL = "https://rekor.sigstore.dev"
ENTRIES_PATH = "/api/v1/log/entries"
DEFAULT_INDEX_PATH = Path.home() / ".ai-artifact-provenance" / "rekor_index.json"
CONTENT_DIR = "rekor_content"


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


class RekorStorage(StorageBackend):
    """Transparency-log manifest storage."""

    def __init__(self,
                 url: str = DEFAULT_REKOR_URL,
                 index_path: Optional[Union[str, Path]] = None,
                 session: Optional[requests.Session] = None,
                 private_key: Optional[PrivateKey] = None,
                 timeout: float = 30):
        """
        Initialize the Rekor client.

        Args:
            url: Rekor server root URL
            index_path: Local JSON file mapping manifest ids to entry UUIDs;
                manifest content is kept in a sibling ``rekor_content``
                directory
            session: HTTP session to use
            private_key: Key used to sign entry content; public instances
                reject unsigned entries
            timeout: Per-request timeout in seconds
        """
        self.url = url.rstrip('/')
        self.index_path = Path(index_path) if index_path else DEFAULT_INDEX_PATH
        self.content_dir = self.index_path.parent / CONTENT_DIR
        self.lock_file = self.index_path.with_name(f".{self.index_path.name}.lock")
        self.session = session or requests.Session()
        self.private_key = private_key
        self.timeout = timeout

    def _load_index(self) -> Dict[str, Dict[str, str]]:
        if not self.index_path.exists():
            return {}
        try:
            return json.loads(self.index_path.read_text())
        except json.JSONDecodeError as e:
            raise SerializationError(f"Corrupt Rekor index {self.index_path}: {e}") from e
        except OSError as e:
            raise StorageError(f"Cannot read Rekor index {self.index_path}: {e}") from e

    def _save_index(self, index: Dict[str, Dict[str, str]]) -> None:
        try:
            self.index_path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(self.index_path, json.dumps(index, indent=2))
        except OSError as e:
            raise StorageError(f"Cannot write Rekor index {self.index_path}: {e}") from e

    def _content_file(self, content_hash: str) -> Path:
        return self.content_dir / f"{content_hash}.json"

    def _request(self, method: str, url: str, **kwargs):
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StorageError(f"Rekor request to {url} failed: {e}") from e

    def _proposed_entry(self, content: bytes, content_hash: str) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "data": {
                "content": _b64(content),
                "hash": {"algorithm": hashing.HASH_ALGORITHM, "value": content_hash},
            }
        }
        if self.private_key is not None:
            signature = sign_data(content, self.private_key, HashAlgorithm.SHA256)
            public_pem = public_key_to_pem(self.private_key.public_key())
            spec["signature"] = {
                "format": "x509",
                "content": _b64(signature),
                "publicKey": {"content": _b64(public_pem.encode('utf-8'))},
            }
        return {"apiVersion": "0.0.1", "kind": "rekord", "spec": spec}

    @staticmethod
    def _entry_uuid(response) -> str:
        # 409 means the same content is already logged; Location names its entry
        if response.status_code == 409:
            location = response.headers.get("Location")
            if not location:
                raise SerializationError("Rekor conflict response carries no Location header")
            return location.rstrip('/').rsplit('/', 1)[-1]
        try:
            return next(iter(response.json()))
        except (ValueError, StopIteration) as e:
            raise SerializationError(f"Unexpected Rekor response: {e}") from e

    def store_manifest(self, manifest: Manifest) -> str:
        """Log the digest of the canonical manifest JSON and keep the content locally."""
        manifest_id = manifest.instance_id
        content = manifest.canonical_json()
        content_hash = hashing.digest(content)

        try:
            self.content_dir.mkdir(parents=True, exist_ok=True)
            _atomic_write(self._content_file(content_hash), content.decode('utf-8'))
        except OSError as e:
            raise StorageError(f"Cannot write manifest content for {manifest_id}: {e}") from e

        response = self._request(
            "POST", f"{self.url}{ENTRIES_PATH}",
            json=self._proposed_entry(content, content_hash),
        )
        if response.status_code not in (200, 201, 409):
            raise StorageError(f"Rekor returned {response.status_code}: {response.text}")
        entry_uuid = self._entry_uuid(response)

        with index_lock(self.lock_file):
            index = self._load_index()
            index[manifest_id] = {"uuid": entry_uuid, "hash": content_hash}
            self._save_index(index)

        logger.info("Stored manifest %s as Rekor entry %s", manifest_id, entry_uuid)
        return manifest_id

    def _logged_hash(self, entry_uuid: str, manifest_id: str) -> str:
        response = self._request("GET", f"{self.url}{ENTRIES_PATH}/{entry_uuid}")
        if response.status_code == 404:
            raise ManifestNotFoundError(
                manifest_id, f"Rekor entry {entry_uuid} for {manifest_id} not found"
            )
        if response.status_code != 200:
            raise StorageError(f"Rekor returned {response.status_code}: {response.text}")

        try:
            log_entry = next(iter(response.json().values()))
            body = json.loads(base64.b64decode(log_entry["body"]))
            return body["spec"]["data"]["hash"]["value"]
        except (ValueError, KeyError, TypeError, StopIteration, binascii.Error) as e:
            raise SerializationError(f"Malformed Rekor entry {entry_uuid}: {e}") from e

    def retrieve_manifest(self, manifest_id: str) -> Manifest:
        """Read the local content and check it against the index and the logged digest."""
        with index_lock(self.lock_file):
            record = self._load_index().get(manifest_id)
        if record is None:
            raise ManifestNotFoundError(manifest_id)

        content_file = self._content_file(record["hash"])
        try:
            content = content_file.read_bytes()
        except OSError as e:
            raise StorageError(f"Cannot read content of manifest {manifest_id}: {e}") from e

        computed = hashing.digest(content)
        if computed != record["hash"]:
            raise StorageError(
                f"Local content of {manifest_id} does not match its recorded digest"
            )
        logged = self._logged_hash(record["uuid"], manifest_id)
        if computed != logged:
            raise StorageError(
                f"Rekor entry {record['uuid']} does not match the digest of {manifest_id}: "
                f"logged={logged}, calculated={computed}"
            )
        return Manifest.from_json(content)

    def list_manifests(self) -> List[ManifestMetadata]:
        with index_lock(self.lock_file):
            manifest_ids = list(self._load_index())
        return [
            manifest_metadata(self.retrieve_manifest(manifest_id), manifest_id)
            for manifest_id in manifest_ids
        ]

    def delete_manifest(self, manifest_id: str) -> None:
        """Forget a manifest. The log entry itself is immutable and stays."""
        with index_lock(self.lock_file):
            index = self._load_index()
            if manifest_id not in index:
                raise ManifestNotFoundError(manifest_id)
            content_hash = index.pop(manifest_id)["hash"]
            self._save_index(index)

            if all(record["hash"] != content_hash for record in index.values()):
                try:
                    self._content_file(content_hash).unlink()
                except FileNotFoundError:
                    logger.debug("Content of %s was already removed", manifest_id)
                except OSError as e:
                    raise StorageError(
                        f"Cannot remove content of manifest {manifest_id}: {e}"
                    ) from e

        logger.warning(
            "Manifest %s removed from local index; the Rekor entry remains in the log",
            manifest_id,
        )
