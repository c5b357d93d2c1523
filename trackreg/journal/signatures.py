# trackreg/journal/signatures.py
"""
Signatures for journal entries.

Entries are signed with RSA-SHA256 (PKCS#1 v1.5) over a canonical JSON
encoding of the entry, so anyone holding the registry's public key can
check that the journal has not been altered.
"""

import base64
import hashlib
import json
import time
from pathlib import Path
from typing import Any, Dict, Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .entry import JournalEntry

SIGNATURE_TYPE = "RsaSignature2017"


def _canonicalize(data: Dict[str, Any]) -> str:
    """Canonical JSON: sorted keys, no whitespace."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"))


def _hash_sha256(data: str) -> bytes:
    return hashlib.sha256(data.encode()).digest()


def generate_keypair() -> Tuple[bytes, bytes]:
    """
    Generate an RSA-2048 key pair for journal signing.

    Returns:
        (private_pem, public_pem)
    """
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048,
    )
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


def public_key_from_private(private_pem: bytes) -> bytes:
    """Derive the PEM public key matching a PEM private key."""
    private_key = serialization.load_pem_private_key(private_pem, password=None)
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def load_key(path: Path | str) -> bytes:
    """Read a PEM key from disk."""
    return Path(path).read_bytes()


def _signed_data(entry: JournalEntry, options: Dict[str, Any]) -> bytes:
    # hash of signature options followed by hash of the entry body
    return _hash_sha256(_canonicalize(options)) + _hash_sha256(_canonicalize(entry.signable()))


def sign_entry(entry: JournalEntry, private_pem: bytes, signer: str = "registry") -> JournalEntry:
    """
    Sign an entry with a private key.

    Args:
        entry: The entry to sign
        private_pem: PEM-encoded private key
        signer: Name recorded as the signature's creator

    Returns:
        The same entry, with its signature block attached
    """
    private_key = serialization.load_pem_private_key(private_pem, password=None)

    options = {
        "type": SIGNATURE_TYPE,
        "creator": signer,
        "created": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
    }
    signature_bytes = private_key.sign(
        _signed_data(entry, options),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )

    entry.signature = dict(
        options,
        signatureValue=base64.b64encode(signature_bytes).decode("utf-8"),
    )
    return entry


def verify_entry(entry: JournalEntry, public_pem: bytes) -> bool:
    """
    Verify an entry's signature.

    Returns:
        True if the entry is signed and the signature matches its content
    """
    if not entry.signature:
        return False

    try:
        public_key = serialization.load_pem_public_key(public_pem)
        options = {
            "type": entry.signature["type"],
            "creator": entry.signature["creator"],
            "created": entry.signature["created"],
        }
        signature_bytes = base64.b64decode(entry.signature["signatureValue"])
        public_key.verify(
            signature_bytes,
            _signed_data(entry, options),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return True

    except (InvalidSignature, KeyError, ValueError):
        return False
