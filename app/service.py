"""
Canary submission service.

Sits between the HTTP layer and the chain guard: decodes and verifies
proofs against the trusted key, hands verified statements to the guard,
and records every outcome in the audit log. A proof that fails to decode
or verify never reaches the guard.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from canarychain.guard import ChainGuard, ExtensionOutcome
from canarychain.hashing import document_hash
from canarychain.signing import ProofError, TrustedKey, load_trusted_key, open_proof
from canarychain.statement import CANARY_VERSION, ChainTip, format_timestamp
from canarychain.store import ProofStore
from canarychain.verifier import ChainIntegrityError, verify_chain

from . import config
from .logging_config import audit_log
from .store_backends import get_proof_store

INVALID_PROOF = "INVALID_PROOF"


class SubmissionOutcome(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    PERSIST_FAILED = "PERSIST_FAILED"


@dataclass
class SubmissionResult:
    outcome: SubmissionOutcome
    reason: Optional[str] = None
    message: str = ""
    details: Optional[Dict[str, Any]] = None

    def is_accepted(self) -> bool:
        return self.outcome == SubmissionOutcome.ACCEPTED


class CanaryService:
    """Publishing state for one trusted key and one chain."""

    def __init__(self, key: Optional[TrustedKey], guard: ChainGuard):
        self.key = key
        self.guard = guard

    @property
    def key_armor(self) -> str:
        return self.key.armor if self.key else ""

    def latest(self) -> Optional[ChainTip]:
        return self.guard.read_tip()

    def status(self) -> Dict[str, Any]:
        tip = self.guard.read_tip()
        return {
            "version": CANARY_VERSION,
            "key": self.key_armor,
            "enabled": tip is not None,
            "deadline": format_timestamp(tip.deadline) if tip else None,
        }

    def submit(self, proof: str) -> SubmissionResult:
        """Verify a proof and propose it as the new chain tip."""
        proof_hash = document_hash(proof)
        audit_log.submission_received(proof_hash, len(proof))

        if self.key is None:
            audit_log.submission_rejected(INVALID_PROOF, {"error": "no trusted key configured"})
            return SubmissionResult(SubmissionOutcome.REJECTED, INVALID_PROOF,
                                    "No canary key configured")

        try:
            statement = open_proof(self.key, proof)
        except ProofError as e:
            audit_log.security_event("proof_verification_failed", "medium",
                                     document_hash=proof_hash, error=str(e))
            audit_log.submission_rejected(INVALID_PROOF, {"error": str(e)})
            return SubmissionResult(SubmissionOutcome.REJECTED, INVALID_PROOF, str(e))

        result = self.guard.propose_extension(statement, proof)

        if result.outcome == ExtensionOutcome.REJECTED:
            audit_log.submission_rejected(result.reason.value, result.details)
            return SubmissionResult(SubmissionOutcome.REJECTED, result.reason.value,
                                    result.reason.message, result.details)

        if result.outcome == ExtensionOutcome.PERSIST_FAILED:
            audit_log.persist_failed(proof_hash, result.error)
            return SubmissionResult(SubmissionOutcome.PERSIST_FAILED, "PERSIST_FAILED",
                                    "Failed to store proof")

        audit_log.canary_accepted(proof_hash, format_timestamp(statement.deadline))
        return SubmissionResult(SubmissionOutcome.ACCEPTED)


def recover_guard(store: ProofStore, key: TrustedKey) -> ChainGuard:
    """
    Rebuild a guard from the proofs already in the store.

    Raises:
        ChainIntegrityError: if the stored chain does not verify
    """
    result = verify_chain(store.documents(), key)
    if not result.is_valid():
        raise ChainIntegrityError(
            f"Stored chain invalid at position {result.index}: {result.reason}"
        )
    audit_log.chain_recovered(
        result.length,
        format_timestamp(result.tip.deadline) if result.tip else None
    )
    return ChainGuard(store, tip=result.tip)


def build_service() -> CanaryService:
    """Create the service from environment configuration."""
    missing = [name for name, ok in config.validate_config().items() if not ok]
    if missing:
        raise RuntimeError(f"Invalid configuration: {', '.join(missing)}")
    key = load_trusted_key(config.PUBLIC_KEY_PATH)
    store = get_proof_store(
        backend=config.STORE_BACKEND,
        store_dir=config.STORE_DIR,
        db_path=config.DB_PATH,
        s3_bucket=config.S3_BUCKET or None,
        s3_prefix=config.S3_PREFIX,
        s3_retention_days=config.S3_RETENTION_DAYS,
        s3_legal_hold=config.S3_LEGAL_HOLD,
        region=config.AWS_REGION or None,
    )
    return CanaryService(key, recover_guard(store, key))
