"""
Content Hasher Module

Computes stable SHA-256 digests of artifact content. Used for ingredient
integrity and for pinning cross-referenced manifests.
"""

import hashlib
import os
from pathlib import Path
from typing import List, Union

from .errors import ArtifactIOError, HexDecodeError, ValidationError

HASH_ALGORITHM = 'sha256'
CHUNK_SIZE = 8192


def digest(data: bytes) -> str:
    """Return the hex SHA-256 digest of ``data``."""
    return hashlib.sha256(data).hexdigest()


def safe_file_path(path: Union[str, Path]) -> Path:
    """
    Reject symlinks and multiply hard-linked files before they are opened.

    Args:
        path: Path about to be read

    Returns:
        The path as a ``Path`` object
    """
    path = Path(path)
    if path.is_symlink():
        raise ValidationError(
            f"Security error: Path {path} is a symlink, which is not allowed"
        )
    if path.exists():
        links = os.stat(path).st_nlink
        if path.is_file() and links > 1:
            raise ValidationError(
                f"Security error: Path {path} has multiple hard links ({links})"
            )
    return path


def digest_file(path: Union[str, Path]) -> str:
    """
    Calculate the digest of a file without loading it into memory.

    Args:
        path: Path to the file

    Returns:
        Hexadecimal SHA-256 digest
    """
    file_path = safe_file_path(path)
    hasher = hashlib.sha256()

    try:
        with open(file_path, 'rb') as f:
            # Read file in chunks to handle large model/dataset files
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                hasher.update(chunk)
    except FileNotFoundError as e:
        raise ArtifactIOError(f"File not found: {file_path}") from e
    except OSError as e:
        raise ArtifactIOError(f"Could not read {file_path}: {e}") from e

    return hasher.hexdigest()


def combine(hashes: List[str]) -> str:
    """
    Combine an ordered list of hex digests into one digest.

    The result is the digest of the concatenated raw bytes of every input,
    so order matters. All inputs are decoded before any hashing starts.

    Args:
        hashes: Hex digests, in significant order

    Returns:
        Hexadecimal SHA-256 digest of the concatenation
    """
    if not hashes:
        raise ValidationError("Cannot combine an empty list of hashes")

    decoded = []
    for value in hashes:
        try:
            decoded.append(bytes.fromhex(value))
        except (TypeError, ValueError) as e:
            raise HexDecodeError(f"Invalid hex digest '{value}': {e}") from e

    hasher = hashlib.sha256()
    for raw in decoded:
        hasher.update(raw)
    return hasher.hexdigest()


def verify(data: bytes, expected_hash: str) -> bool:
    """Exact, case-sensitive comparison of ``digest(data)`` with ``expected_hash``."""
    return digest(data) == expected_hash
