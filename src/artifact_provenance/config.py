"""
Configuration Module

Runtime settings: storage selection, signing key and digest, attestation.
Values come from defaults, then an optional YAML file, then environment
variables.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel

from .errors import ArtifactIOError, SerializationError, ValidationError

ENV_VARS = {
    "storage_type": "PROVENANCE_STORAGE_TYPE",
    "storage_url": "PROVENANCE_STORAGE_URL",
    "rekor_url": "PROVENANCE_REKOR_URL",
    "filesystem_path": "PROVENANCE_FS_PATH",
    "key_path": "PROVENANCE_KEY_PATH",
    "hash_alg": "PROVENANCE_HASH_ALG",
    "with_cc": "PROVENANCE_WITH_CC",
    "show_progress": "PROVENANCE_SHOW_PROGRESS",
}


class ProvenanceConfig(BaseModel):
    storage_type: str = "database"
    storage_url: str = "http://localhost:8080"
    rekor_url: str = "https://rekor.sigstore.dev"
    filesystem_path: Optional[str] = None
    key_path: Optional[str] = None
    hash_alg: str = "sha384"
    with_cc: bool = False
    show_progress: bool = False

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "ProvenanceConfig":
        """
        Load settings from a YAML mapping.

        Args:
            path: YAML file; unknown keys are ignored

        Returns:
            ProvenanceConfig instance
        """
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError as e:
            raise ArtifactIOError(f"Config file not found: {path}") from e
        except yaml.YAMLError as e:
            raise SerializationError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValidationError(f"Config file {path} must contain a mapping")
        return cls._validated(data)

    @classmethod
    def _validated(cls, data: Dict[str, Any]) -> "ProvenanceConfig":
        known = {k: v for k, v in data.items() if k in cls.model_fields}
        try:
            return cls.model_validate(known)
        except ValueError as e:
            raise ValidationError(f"Invalid configuration: {e}") from e

    def with_env_overrides(self, environ: Optional[Dict[str, str]] = None) -> "ProvenanceConfig":
        """Return a copy with ``PROVENANCE_*`` environment variables applied."""
        environ = os.environ if environ is None else environ
        data = self.model_dump()
        for field, var in ENV_VARS.items():
            if var in environ:
                data[field] = environ[var]
        return self._validated(data)


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Dict[str, str]] = None) -> ProvenanceConfig:
    """Defaults, then ``path`` if given, then environment overrides."""
    config = ProvenanceConfig.from_yaml(path) if path else ProvenanceConfig()
    return config.with_env_overrides(environ)
