"""
Canary Proof Signing

Uses Ed25519 (RFC 8032) for canary proofs.

A proof is the canonical JSON text:
    {"canary": {...}, "signatures": [{"kid": ..., "alg": "ed25519", "sig_b64": ...}]}

The signature covers canonicalize(canary). A service trusts exactly one
public key; open_proof() is the only way a proof becomes a SignedStatement.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Union

from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import SigningKey, VerifyKey

from .canonicalization import canonicalize, canonicalize_str
from .statement import SignedStatement

SIGNATURE_ALGORITHM = "ed25519"


class ProofError(Exception):
    """A proof could not be decoded or its signature is not trusted."""


def b64e(b: bytes) -> str:
    return base64.b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    return base64.b64decode(s.encode('ascii'), validate=True)


@dataclass(frozen=True)
class TrustedKey:
    """The single public key whose proofs the service accepts."""
    kid: str
    public_key: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kid": self.kid,
            "alg": SIGNATURE_ALGORITHM,
            "public_key_b64": b64e(self.public_key),
        }

    @property
    def armor(self) -> str:
        """Text form of the key as published to readers."""
        return json.dumps(self.to_dict(), indent=2, sort_keys=True) + "\n"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TrustedKey':
        try:
            alg = data.get("alg", SIGNATURE_ALGORITHM)
            if alg != SIGNATURE_ALGORITHM:
                raise ValueError(f"Unsupported key algorithm: {alg}")
            key = cls(kid=data["kid"], public_key=b64d(data["public_key_b64"]))
            VerifyKey(key.public_key)
            return key
        except (KeyError, TypeError, binascii.Error, CryptoError) as e:
            raise ValueError(f"Malformed public key: {e}") from e


@dataclass(frozen=True)
class SigningKeyFile:
    """Private signing key held by the canary author."""
    kid: str
    private_key: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {"kid": self.kid, "private_key_b64": b64e(self.private_key)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SigningKeyFile':
        try:
            return cls(kid=data["kid"], private_key=b64d(data["private_key_b64"]))
        except (KeyError, TypeError, binascii.Error) as e:
            raise ValueError(f"Malformed signing key: {e}") from e

    def trusted_key(self) -> TrustedKey:
        """Public half of this key."""
        return TrustedKey(kid=self.kid, public_key=bytes(SigningKey(self.private_key).verify_key))


def generate_key_pair(kid: str) -> SigningKeyFile:
    """Generate a new Ed25519 signing key."""
    return SigningKeyFile(kid=kid, private_key=bytes(SigningKey.generate()))


def _load_json(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def load_signing_key(path: Union[str, Path]) -> SigningKeyFile:
    return SigningKeyFile.from_dict(_load_json(path))


def load_trusted_key(path: Union[str, Path]) -> TrustedKey:
    return TrustedKey.from_dict(_load_json(path))


def save_signing_key(key: SigningKeyFile, path: Union[str, Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(key.to_dict(), f, indent=2)


def save_trusted_key(key: TrustedKey, path: Union[str, Path]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(key.armor)


def seal_canary(canary: Dict[str, Any], key: SigningKeyFile) -> str:
    """
    Sign a canary body and return the proof text.

    Args:
        canary: body from create_canary()
        key: the author's signing key

    Returns:
        Canonical JSON proof text
    """
    signature = SigningKey(key.private_key).sign(canonicalize(canary)).signature
    return canonicalize_str({
        "canary": canary,
        "signatures": [{"kid": key.kid, "alg": SIGNATURE_ALGORITHM, "sig_b64": b64e(signature)}],
    })


def open_proof(key: TrustedKey, proof: Union[str, bytes]) -> SignedStatement:
    """
    Verify a proof against the trusted key and decode its canary.

    Raises:
        ProofError: on malformed JSON, missing fields, a signature by any
            other key, or a signature that does not verify
    """
    if isinstance(proof, bytes):
        try:
            proof = proof.decode('utf-8')
        except UnicodeDecodeError as e:
            raise ProofError("Proof is not valid UTF-8") from e

    try:
        envelope = json.loads(proof)
    except (ValueError, RecursionError) as e:
        raise ProofError(f"Proof is not valid JSON: {e}") from e

    if not isinstance(envelope, dict):
        raise ProofError("Proof must be a JSON object")
    canary = envelope.get("canary")
    sigs = envelope.get("signatures")
    if not isinstance(canary, dict):
        raise ProofError("Proof is missing the canary body")
    if not isinstance(sigs, list) or not sigs:
        raise ProofError("Proof has no signatures")

    sig = next((s for s in sigs if isinstance(s, dict) and s.get("kid") == key.kid), None)
    if sig is None:
        raise ProofError("Proof is not signed by the trusted key")
    if sig.get("alg", SIGNATURE_ALGORITHM) != SIGNATURE_ALGORITHM:
        raise ProofError(f"Unsupported signature algorithm: {sig.get('alg')}")

    sig_b64 = sig.get("sig_b64")
    if not isinstance(sig_b64, str):
        raise ProofError("Signature is missing sig_b64")

    try:
        payload = canonicalize(canary)
        VerifyKey(key.public_key).verify(payload, b64d(sig_b64))
    except RecursionError as e:
        raise ProofError("Canary body is nested too deeply") from e
    except (BadSignatureError, binascii.Error, ValueError, TypeError) as e:
        raise ProofError("Invalid signature") from e

    try:
        return SignedStatement.from_dict(canary)
    except ValueError as e:
        raise ProofError(f"Malformed canary: {e}") from e
