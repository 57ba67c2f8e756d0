"""
canarychain: Warrant Canary Chain Verifier

Version: 1.0.0
License: Apache 2.0

An operator periodically publishes signed canaries, each promising
continued, uncoerced operation until its deadline. Every canary links to
its predecessor by hash, and deadlines strictly increase, so readers can
detect any break in the chain.

Only the latest valid canary is published. A new canary becomes the tip
only if it:
- declares the supported protocol version
- has a deadline in the future
- has a deadline after the current tip's deadline
- references the hash of the current tip's exact proof text
and has been durably stored.

Usage:
    from canarychain import (
        ChainGuard,
        DirectoryProofStore,
        create_canary,
        generate_key_pair,
        open_proof,
        seal_canary,
    )

    key = generate_key_pair("canary-01")
    guard = ChainGuard(DirectoryProofStore("proofs/"))

    proof = seal_canary(create_canary(deadline=next_month), key)
    statement = open_proof(key.trusted_key(), proof)

    result = guard.propose_extension(statement, proof)
    if result.is_accepted():
        latest = guard.read_tip().document
"""

__version__ = "1.0.0"
__license__ = "Apache-2.0"

# Data model
from .statement import (
    CANARY_VERSION,
    SignedStatement,
    ChainTip,
    create_canary,
    format_timestamp,
    parse_timestamp,
)

# Canonicalization and hashing
from .canonicalization import canonicalize, canonicalize_str
from .hashing import sha256_hash, document_hash, verify_hash

# Validation
from .validator import (
    ChainValidator,
    ValidationResult,
    RejectReason,
    validate_extension,
)

# Guard
from .guard import (
    ChainGuard,
    ChainState,
    ExtensionOutcome,
    ExtensionResult,
)

# Storage
from .store import (
    ProofStore,
    DirectoryProofStore,
    StoreError,
    deadline_key,
)

# Signing
from .signing import (
    ProofError,
    SigningKeyFile,
    TrustedKey,
    generate_key_pair,
    load_signing_key,
    load_trusted_key,
    open_proof,
    seal_canary,
)

# Verifier
from .verifier import (
    ChainIntegrityError,
    ChainOutcome,
    ChainVerificationResult,
    verify_chain,
)


__all__ = [
    # Version
    "__version__",

    # Data model
    "CANARY_VERSION",
    "SignedStatement",
    "ChainTip",
    "create_canary",
    "format_timestamp",
    "parse_timestamp",

    # Canonicalization
    "canonicalize",
    "canonicalize_str",

    # Hashing
    "sha256_hash",
    "document_hash",
    "verify_hash",

    # Validation
    "ChainValidator",
    "ValidationResult",
    "RejectReason",
    "validate_extension",

    # Guard
    "ChainGuard",
    "ChainState",
    "ExtensionOutcome",
    "ExtensionResult",

    # Storage
    "ProofStore",
    "DirectoryProofStore",
    "StoreError",
    "deadline_key",

    # Signing
    "ProofError",
    "SigningKeyFile",
    "TrustedKey",
    "generate_key_pair",
    "load_signing_key",
    "load_trusted_key",
    "open_proof",
    "seal_canary",

    # Verifier
    "ChainIntegrityError",
    "ChainOutcome",
    "ChainVerificationResult",
    "verify_chain",
]
