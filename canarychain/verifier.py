"""
Offline Canary Chain Verifier

Lets any reader re-derive a chain from published proofs without access to
the service: every proof must carry a valid signature by the trusted key
and extend its predecessor under the same rules the service enforces.

A proof is replayed as of its own creation time, so each canary must have
promised a deadline beyond the moment it was written.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from .signing import ProofError, TrustedKey, open_proof
from .statement import ChainTip
from .validator import ChainValidator


class ChainIntegrityError(Exception):
    """A stored or published chain failed verification."""


class ChainOutcome(str, Enum):
    VALID = "VALID"
    INVALID = "INVALID"


@dataclass
class ChainVerificationResult:
    """Result of verifying a sequence of proofs."""
    outcome: ChainOutcome
    length: int = 0
    tip: Optional[ChainTip] = None
    index: Optional[int] = None
    reason: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def is_valid(self) -> bool:
        return self.outcome == ChainOutcome.VALID

    @classmethod
    def valid(cls, length: int, tip: Optional[ChainTip]) -> 'ChainVerificationResult':
        return cls(outcome=ChainOutcome.VALID, length=length, tip=tip)

    @classmethod
    def invalid(
        cls,
        index: int,
        reason: str,
        details: Dict[str, Any] = None,
        tip: Optional[ChainTip] = None
    ) -> 'ChainVerificationResult':
        return cls(outcome=ChainOutcome.INVALID, length=index, tip=tip,
                   index=index, reason=reason, details=details)


def verify_chain(
    documents: Iterable[str],
    key: TrustedKey,
    validator: Optional[ChainValidator] = None
) -> ChainVerificationResult:
    """
    Verify an ordered sequence of raw proofs.

    Args:
        documents: proof texts, oldest first
        key: the trusted public key
        validator: chain rules (default: ChainValidator())

    Returns:
        ChainVerificationResult; on failure, index is the position of the
        first offending proof and tip is the last good one
    """
    validator = validator or ChainValidator()
    tip: Optional[ChainTip] = None
    count = 0

    for index, raw in enumerate(documents):
        try:
            statement = open_proof(key, raw)
        except ProofError as e:
            return ChainVerificationResult.invalid(index, "INVALID_PROOF", {"error": str(e)}, tip)

        verdict = validator.validate(tip, statement, statement.creation)
        if not verdict.accepted:
            return ChainVerificationResult.invalid(index, verdict.reason.value, verdict.details, tip)

        tip = ChainTip(document=raw, statement=statement)
        count += 1

    return ChainVerificationResult.valid(count, tip)
