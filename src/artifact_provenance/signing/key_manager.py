"""
Key Manager Module

Manages key pairs used to sign manifest claims.
Supports RSA, ECDSA and Ed25519 key generation, loading, and saving.
"""

import os
from pathlib import Path
from typing import Union, Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa, ec, ed25519

from ..errors import ArtifactIOError, SigningError

PrivateKey = Union[rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey, ed25519.Ed25519PrivateKey]
PublicKey = Union[rsa.RSAPublicKey, ec.EllipticCurvePublicKey, ed25519.Ed25519PublicKey]

CURVES = {
    'secp256r1': ec.SECP256R1,
    'secp384r1': ec.SECP384R1,
    'secp521r1': ec.SECP521R1,
}


def _read_pem(file_path: Union[str, Path], what: str) -> bytes:
    try:
        with open(file_path, 'rb') as f:
            return f.read()
    except FileNotFoundError as e:
        raise ArtifactIOError(f"{what} file not found: {file_path}") from e
    except OSError as e:
        raise ArtifactIOError(f"Could not read {what.lower()} file {file_path}: {e}") from e


class KeyManager:
    """Generates, stores and loads PEM key pairs."""

    def generate_key_pair(self,
                          key_type: str = 'RSA',
                          key_size: int = 2048,
                          curve_name: str = 'secp384r1') -> Tuple[PrivateKey, PublicKey]:
        """
        Generate a key pair.

        Args:
            key_type: 'RSA', 'ECDSA' or 'ED25519'
            key_size: RSA modulus size in bits
            curve_name: Elliptic curve for ECDSA keys

        Returns:
            Tuple of (private_key, public_key)
        """
        key_type = key_type.upper()
        if key_type == 'RSA':
            if key_size < 2048:
                raise SigningError("RSA key size must be at least 2048 bits")
            private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        elif key_type == 'ECDSA':
            if curve_name not in CURVES:
                raise SigningError(
                    f"Unsupported curve: {curve_name}. Supported curves: {', '.join(CURVES)}"
                )
            private_key = ec.generate_private_key(CURVES[curve_name]())
        elif key_type == 'ED25519':
            private_key = ed25519.Ed25519PrivateKey.generate()
        else:
            raise SigningError(f"Unsupported key type: {key_type}")

        return private_key, private_key.public_key()

    def save_private_key(self,
                         private_key: PrivateKey,
                         file_path: Union[str, Path],
                         password: Optional[bytes] = None) -> None:
        """Write a private key as PKCS#8 PEM, readable only by the owner."""
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)

        encryption = serialization.NoEncryption()
        if password is not None:
            encryption = serialization.BestAvailableEncryption(password)

        pem_bytes = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=encryption
        )

        with open(file_path, 'wb') as f:
            f.write(pem_bytes)
        os.chmod(file_path, 0o600)

    def save_public_key(self, public_key: PublicKey, file_path: Union[str, Path]) -> None:
        Path(file_path).parent.mkdir(parents=True, exist_ok=True)
        with open(file_path, 'wb') as f:
            f.write(public_key_to_pem(public_key).encode('utf-8'))

    def load_private_key(self,
                         file_path: Union[str, Path],
                         password: Optional[bytes] = None) -> PrivateKey:
        """
        Load a PEM private key.

        Args:
            file_path: Path to the private key file
            password: Optional password for decryption

        Returns:
            Private key object
        """
        pem_data = _read_pem(file_path, "Private key")
        try:
            return serialization.load_pem_private_key(pem_data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Failed to load private key from {file_path}: {e}") from e

    def load_public_key(self, file_path: Union[str, Path]) -> PublicKey:
        return self.load_public_key_from_string(_read_pem(file_path, "Public key"))

    def load_public_key_from_string(self, pem: Union[str, bytes]) -> PublicKey:
        if isinstance(pem, str):
            pem = pem.encode('utf-8')
        try:
            return serialization.load_pem_public_key(pem)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise SigningError(f"Failed to load public key: {e}") from e

    def create_key_pair_files(self,
                              key_type: str = 'RSA',
                              private_key_path: str = 'private_key.pem',
                              public_key_path: str = 'public_key.pem',
                              password: Optional[bytes] = None,
                              **kwargs) -> Tuple[str, str]:
        """
        Generate and save a key pair to files.

        Returns:
            Tuple of (private_key_path, public_key_path)
        """
        private_key, public_key = self.generate_key_pair(key_type, **kwargs)
        self.save_private_key(private_key, private_key_path, password)
        self.save_public_key(public_key, public_key_path)
        return private_key_path, public_key_path


def public_key_to_pem(public_key: PublicKey) -> str:
    return public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')
