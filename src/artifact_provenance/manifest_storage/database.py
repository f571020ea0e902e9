"""
Database Storage Module

HTTP client for the manifest storage service (see ``service.py``), which
keeps manifests in a relational table.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ..errors import ManifestNotFoundError, SerializationError, StorageError
from ..models import Manifest, ManifestMetadata
from ..verification.kind_inference import infer_kind
from .storage_backend import StorageBackend, manifest_metadata

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class DatabaseStorage(StorageBackend):
    """Manifest storage backed by the REST storage service."""

    def __init__(self,
                 base_url: str = "http://localhost:8080",
                 session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the client.

        Args:
            base_url: Root URL of the storage service
            session: HTTP session to use; any object with the ``requests``
                request methods works
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, manifest_id: Optional[str] = None) -> str:
        if manifest_id is None:
            return f"{self.base_url}/manifests"
        return f"{self.base_url}/manifests/{quote(manifest_id, safe='')}"

    def _request(self, method: str, url: str, **kwargs):
        try:
            return self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StorageError(f"Request to {url} failed: {e}") from e

    @staticmethod
    def _check(response, manifest_id: Optional[str] = None) -> None:
        if response.status_code == 404 and manifest_id is not None:
            raise ManifestNotFoundError(manifest_id)
        if not 200 <= response.status_code < 300:
            raise StorageError(
                f"Storage service returned {response.status_code}: {response.text}"
            )

    @staticmethod
    def _json(response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise SerializationError(f"Invalid JSON from storage service: {e}") from e

    def store_manifest(self, manifest: Manifest) -> str:
        manifest_id = manifest.instance_id
        payload = {
            "manifest_type": infer_kind(manifest).value,
            "manifest": manifest.to_dict(),
        }
        response = self._request("POST", self._url(manifest_id), json=payload)
        self._check(response)
        logger.debug("Stored manifest %s in database", manifest_id)
        return manifest_id

    def retrieve_manifest(self, manifest_id: str) -> Manifest:
        response = self._request("GET", self._url(manifest_id))
        self._check(response, manifest_id)
        entry = self._json(response)
        return Manifest.from_dict(entry["manifest"])

    def list_manifests(self) -> List[ManifestMetadata]:
        response = self._request("GET", self._url())
        self._check(response)
        entries: List[Dict[str, Any]] = self._json(response)
        return [
            manifest_metadata(Manifest.from_dict(entry["manifest"]), entry["manifest_id"])
            for entry in entries
        ]

    def delete_manifest(self, manifest_id: str) -> None:
        response = self._request("DELETE", self._url(manifest_id))
        self._check(response, manifest_id)
