"""
Canary hashing.

Chain linkage hashes the exact raw text of the predecessor proof, never a
re-parsed or re-serialized form, so that any reader hashing the bytes it
fetched arrives at the same value.
All hashes use SHA-256 with lowercase hexadecimal output and a "sha256:" prefix.
"""

import hashlib
import hmac
from typing import Union


def sha256_hash(data: Union[bytes, str]) -> str:
    """
    Compute SHA-256 hash in canary format.

    Returns:
        Hash string in format "sha256:abcdef..."
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    digest = hashlib.sha256(data).hexdigest().lower()
    return f"sha256:{digest}"


def document_hash(raw: Union[bytes, str]) -> str:
    """
    Compute the linkage hash of a raw proof document.

    The successor of this document must carry the returned value in its
    "previous" field.
    """
    return sha256_hash(raw)


def verify_hash(declared_hash: str, data: Union[bytes, str]) -> bool:
    """Recompute the hash of data and compare it with a declared hash."""
    if not declared_hash.startswith("sha256:"):
        return False
    computed = sha256_hash(data)
    return hmac.compare_digest(computed.encode('utf-8'), declared_hash.encode('utf-8'))
