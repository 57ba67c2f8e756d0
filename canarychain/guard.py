"""
Chain Guard

Owns the current chain tip and serializes every attempt to extend it.

State machine:
    EMPTY --[extension accepted]--> ACTIVE(tip)
    ACTIVE(tip) --[extension accepted]--> ACTIVE(tip') with tip'.deadline > tip.deadline

No transition removes or rewinds a tip. Writers hold an exclusive lock from
validation through persistence to commit. The tip itself is an immutable
ChainTip swapped in a single assignment after the store reports success,
so readers take a snapshot without locking and can only ever observe a
fully persisted tip.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .statement import ChainTip, SignedStatement
from .store import ProofStore, StoreError
from .validator import ChainValidator, RejectReason

logger = logging.getLogger(__name__)


class ChainState(str, Enum):
    """EMPTY: no canary accepted yet. ACTIVE: a tip is being published."""
    EMPTY = "EMPTY"
    ACTIVE = "ACTIVE"


class ExtensionOutcome(str, Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    PERSIST_FAILED = "PERSIST_FAILED"


@dataclass
class ExtensionResult:
    """
    Result of proposing a chain extension.

    REJECTED carries the validator's reason and is a submitter error.
    PERSIST_FAILED carries the store error and is safe to retry with the
    identical candidate, since the tip did not move.
    """
    outcome: ExtensionOutcome
    reason: Optional[RejectReason] = None
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    tip: Optional[ChainTip] = None

    def is_accepted(self) -> bool:
        return self.outcome == ExtensionOutcome.ACCEPTED

    @classmethod
    def accepted(cls, tip: ChainTip) -> 'ExtensionResult':
        return cls(outcome=ExtensionOutcome.ACCEPTED, tip=tip)

    @classmethod
    def rejected(cls, reason: RejectReason, details: Dict[str, Any] = None) -> 'ExtensionResult':
        return cls(outcome=ExtensionOutcome.REJECTED, reason=reason, details=details)

    @classmethod
    def persist_failed(cls, error: str) -> 'ExtensionResult':
        return cls(outcome=ExtensionOutcome.PERSIST_FAILED, error=error)


class ChainGuard:
    """
    Concurrency-safe holder of one chain tip.

    Callers must only propose statements whose signatures were verified
    against the trusted key; the guard does not re-check them.
    """

    def __init__(
        self,
        store: ProofStore,
        validator: Optional[ChainValidator] = None,
        tip: Optional[ChainTip] = None
    ):
        self._store = store
        self._validator = validator or ChainValidator()
        self._write_lock = threading.Lock()
        self._tip: Optional[ChainTip] = tip

    def read_tip(self) -> Optional[ChainTip]:
        """Return the current tip snapshot, or None if no canary was ever accepted."""
        return self._tip

    @property
    def state(self) -> ChainState:
        return ChainState.EMPTY if self._tip is None else ChainState.ACTIVE

    def is_active(self) -> bool:
        return self._tip is not None

    def propose_extension(
        self,
        candidate: SignedStatement,
        raw: str,
        now: Optional[datetime] = None
    ) -> ExtensionResult:
        """
        Validate, persist and commit a new tip.

        Args:
            candidate: statement decoded from raw, signature already verified
            raw: the exact proof text; stored and republished verbatim
            now: acceptance time, timezone-aware (default: current UTC time,
                read under the lock)

        Returns:
            ExtensionResult; the tip only changes on ACCEPTED
        """
        with self._write_lock:
            if now is None:
                now = datetime.now(timezone.utc)
            current = self._tip

            verdict = self._validator.validate(current, candidate, now)
            if not verdict.accepted:
                return ExtensionResult.rejected(verdict.reason, verdict.details)

            try:
                self._store.store(raw, candidate.deadline)
            except StoreError as e:
                logger.error("Failed to persist valid proof: %s", e)
                return ExtensionResult.persist_failed(str(e))

            new_tip = ChainTip(document=raw, statement=candidate)
            self._tip = new_tip
            return ExtensionResult.accepted(new_tip)
