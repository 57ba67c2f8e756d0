"""
Canary data model.

A canary is a signed, dated statement that its author is operating
without coercion until the deadline. A SignedStatement is the decoded body
of a proof whose signature has already been checked; the proof text it
came from is kept verbatim alongside it in a ChainTip.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


CANARY_VERSION = "v1"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC string with second precision."""
    if dt.tzinfo is None:
        raise ValueError("Canary timestamps must be timezone-aware")
    return dt.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(s: str) -> datetime:
    """Parse an RFC 3339 UTC string ("2026-01-01T00:00:00Z") into an aware datetime."""
    if not isinstance(s, str):
        raise ValueError(f"Timestamp must be a string, got {type(s).__name__}")
    return datetime.strptime(s, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SignedStatement:
    """
    Verified content of one canary.

    Fields:
    - version: protocol version tag, must equal CANARY_VERSION
    - deadline: the promise expires at this instant
    - previous_hash: document_hash() of the predecessor proof, "" for the
      first canary of a chain
    - author, creation, nonce, description: descriptive fields signed along
      with the rest of the body
    """
    version: str
    deadline: datetime
    previous_hash: str = ""
    author: str = ""
    creation: Optional[datetime] = None
    nonce: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SignedStatement':
        """
        Decode a canary body.

        Raises:
            ValueError: if a required field is missing or malformed
        """
        if not isinstance(data, dict):
            raise ValueError("Canary body must be an object")

        for name in ("version", "deadline", "creation"):
            if name not in data:
                raise ValueError(f"Canary body is missing '{name}'")

        version = data["version"]
        if not isinstance(version, str):
            raise ValueError("Canary 'version' must be a string")

        previous = data.get("previous", "")
        if not isinstance(previous, str):
            raise ValueError("Canary 'previous' must be a string")

        return cls(
            version=version,
            deadline=parse_timestamp(data["deadline"]),
            previous_hash=previous,
            author=str(data.get("author", "")),
            creation=parse_timestamp(data["creation"]),
            nonce=str(data.get("nonce", "")),
            description=str(data.get("description", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "version": self.version,
            "author": self.author,
            "deadline": format_timestamp(self.deadline),
            "nonce": self.nonce,
            "previous": self.previous_hash,
            "description": self.description,
        }
        if self.creation is not None:
            d["creation"] = format_timestamp(self.creation)
        return d


@dataclass(frozen=True)
class ChainTip:
    """The most recently accepted canary: raw proof text plus its decoded statement."""
    document: str
    statement: SignedStatement

    @property
    def deadline(self) -> datetime:
        return self.statement.deadline


def create_canary(
    deadline: datetime,
    previous_hash: str = "",
    author: str = "",
    description: str = "",
    creation: Optional[datetime] = None,
    version: str = CANARY_VERSION,
) -> Dict[str, Any]:
    """
    Build an unsigned canary body, ready for signing.

    Args:
        deadline: when the promise expires
        previous_hash: document_hash() of the previous proof ("" for a new chain)
        author: free-form author identifier
        description: the attestation text
        creation: creation time (default: now, truncated to seconds)
        version: protocol version tag

    Returns:
        Canary body dict with RFC 3339 timestamps and a fresh nonce
    """
    creation = creation or datetime.now(timezone.utc).replace(microsecond=0)
    return SignedStatement(
        version=version,
        deadline=deadline,
        previous_hash=previous_hash,
        author=author,
        creation=creation,
        nonce=secrets.token_hex(16),
        description=description,
    ).to_dict()
