"""
Canary Chain Validator

Decides whether a verified statement may extend the current chain tip.

Checks, in order (first failure wins):
1. Version matches the supported protocol version
2. Deadline is strictly in the future, and after the canary's own
   creation time when it declares one
3. Deadline is strictly after the tip's deadline
4. Previous-hash equals the hash of the tip's raw proof

Checks 3 and 4 are skipped on an empty chain. The validator is a pure
function of its inputs and holds no shared state.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from .hashing import document_hash
from .statement import CANARY_VERSION, ChainTip, SignedStatement, format_timestamp


class RejectReason(str, Enum):
    """Stable, machine-distinguishable rejection codes."""
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"
    DEADLINE_NOT_FUTURE = "DEADLINE_NOT_FUTURE"
    DEADLINE_NOT_INCREASING = "DEADLINE_NOT_INCREASING"
    BROKEN_LINKAGE = "BROKEN_LINKAGE"

    @property
    def message(self) -> str:
        return _REJECT_MESSAGES[self]


_REJECT_MESSAGES = {
    RejectReason.UNSUPPORTED_VERSION: "Unsupported canary version",
    RejectReason.DEADLINE_NOT_FUTURE: "Canary must have a deadline in the future",
    RejectReason.DEADLINE_NOT_INCREASING: "New canary deadline must be after previous deadline",
    RejectReason.BROKEN_LINKAGE: "Canary must reference the preceding canary hash",
}


@dataclass
class ValidationResult:
    """Result of validating a candidate against the chain tip."""
    accepted: bool
    reason: Optional[RejectReason] = None
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def accept(cls) -> 'ValidationResult':
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: RejectReason, details: Dict[str, Any] = None) -> 'ValidationResult':
        return cls(accepted=False, reason=reason, details=details)


class ChainValidator:
    """
    Chain-extension rules for a single-signer canary chain.

    The candidate's signature must already have been verified; the
    validator never looks at signatures.
    """

    def __init__(
        self,
        supported_version: str = CANARY_VERSION,
        hash_fn: Callable[[str], str] = document_hash
    ):
        self.supported_version = supported_version
        self.hash_fn = hash_fn

    def validate(
        self,
        tip: Optional[ChainTip],
        candidate: SignedStatement,
        now: datetime
    ) -> ValidationResult:
        """
        Validate a candidate extension.

        Args:
            tip: current chain tip, or None for an empty chain
            candidate: the verified statement being proposed
            now: acceptance time; must be timezone-aware

        Returns:
            ValidationResult, accepted or carrying the first failing RejectReason

        Raises:
            ValueError: if now is a naive datetime
        """
        if now.tzinfo is None:
            raise ValueError("Validation time must be timezone-aware")

        # Step 1: version
        if candidate.version != self.supported_version:
            return ValidationResult.reject(
                RejectReason.UNSUPPORTED_VERSION,
                {"required": self.supported_version, "observed": candidate.version}
            )

        # Step 2: deadline after both now and the declared creation time
        creation = candidate.creation
        if not candidate.deadline > now or (creation is not None and not candidate.deadline > creation):
            details = {"now": format_timestamp(now), "deadline": format_timestamp(candidate.deadline)}
            if creation is not None:
                details["creation"] = format_timestamp(creation)
            return ValidationResult.reject(RejectReason.DEADLINE_NOT_FUTURE, details)

        if tip is None:
            return ValidationResult.accept()

        # Step 3: monotonic deadline
        if not candidate.deadline > tip.statement.deadline:
            return ValidationResult.reject(
                RejectReason.DEADLINE_NOT_INCREASING,
                {
                    "previous_deadline": format_timestamp(tip.statement.deadline),
                    "deadline": format_timestamp(candidate.deadline)
                }
            )

        # Step 4: linkage
        expected = self.hash_fn(tip.document)
        if candidate.previous_hash != expected:
            return ValidationResult.reject(
                RejectReason.BROKEN_LINKAGE,
                {"required": expected, "observed": candidate.previous_hash}
            )

        return ValidationResult.accept()


def validate_extension(
    tip: Optional[ChainTip],
    candidate: SignedStatement,
    now: datetime
) -> ValidationResult:
    """Validate a candidate with the default protocol version and hash."""
    return ChainValidator().validate(tip, candidate, now)
