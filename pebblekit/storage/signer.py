"""
Ed25519 signing for storage record headers.

Signing is optional. When a manager is configured with a SigningKey every
record header carries a signature, and recovery with the matching
VerifyingKey drops records that were not signed by it.
"""

import base64
import binascii
import hashlib
import os
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from ..core.canonical import canonical_json_bytes


def _pubkey_id(public_key: Ed25519PublicKey) -> str:
    public_pem = public_key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return hashlib.sha256(public_pem).hexdigest()[:16]


class SigningKey:
    """Ed25519 private key used to sign record headers."""

    def __init__(self, private_key: Ed25519PrivateKey):
        self.private_key = private_key
        self.public_key = private_key.public_key()

    @classmethod
    def generate(cls) -> "SigningKey":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def load_from_file(cls, path: str) -> "SigningKey":
        """
        Load private key from PEM file.

        Raises:
            FileNotFoundError: If key file doesn't exist
            ValueError: If key is not an Ed25519 private key
        """
        with open(path, "rb") as f:
            private_key = serialization.load_pem_private_key(f.read(), password=None)

        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError("Key file is not Ed25519 private key")

        return cls(private_key)

    def save_to_file(self, path: str, public_path: Optional[str] = None) -> None:
        """Write the private key (and optionally the public key) as PEM."""
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

        private_pem = self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        with open(path, "wb") as f:
            f.write(private_pem)

        if public_path:
            public_pem = self.public_key.public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
            with open(public_path, "wb") as f:
                f.write(public_pem)

    def sign_base64(self, payload: dict) -> str:
        """Sign the canonical form of payload, base64-encoded."""
        signature = self.private_key.sign(canonical_json_bytes(payload))
        return base64.b64encode(signature).decode("ascii")

    def get_pubkey_id(self) -> str:
        return _pubkey_id(self.public_key)


class VerifyingKey:
    """Ed25519 public key used to verify record headers."""

    def __init__(self, public_key: Ed25519PublicKey):
        self.public_key = public_key

    @classmethod
    def load_from_file(cls, path: str) -> "VerifyingKey":
        with open(path, "rb") as f:
            public_key = serialization.load_pem_public_key(f.read())

        if not isinstance(public_key, Ed25519PublicKey):
            raise ValueError("Key file is not Ed25519 public key")

        return cls(public_key)

    @classmethod
    def from_signing_key(cls, signing_key: SigningKey) -> "VerifyingKey":
        return cls(signing_key.public_key)

    def verify_base64(self, payload: dict, signature_b64: str) -> bool:
        """True if signature_b64 is a valid signature over payload."""
        try:
            signature = base64.b64decode(signature_b64, validate=True)
        except (binascii.Error, ValueError):
            return False
        try:
            self.public_key.verify(signature, canonical_json_bytes(payload))
        except InvalidSignature:
            return False
        return True

    def get_pubkey_id(self) -> str:
        return _pubkey_id(self.public_key)
