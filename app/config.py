"""
Configuration module for the canary server.

Centralizes all configuration with environment variable support
and validation.
"""

import os
from pathlib import Path
from typing import Dict

# ============================================================
# Environment Configuration
# ============================================================

# Listener
HOST = os.getenv("CANARY_HOST", "127.0.0.1")
PORT = int(os.getenv("CANARY_PORT", "8000"))

# Trusted public key (JSON written by `canarychain keygen`)
PUBLIC_KEY_PATH = os.getenv("CANARY_PUBLIC_KEY_PATH", "trust/canary_public_key.json")

# Proof store: directory | sqlite | s3_object_lock
STORE_BACKEND = os.getenv("CANARY_STORE_BACKEND", "directory")
STORE_DIR = os.getenv("CANARY_STORE_DIR", "data/proofs")
DB_PATH = os.getenv("CANARY_DB_PATH", "data/canary.db")

# S3 Object Lock backend
S3_BUCKET = os.getenv("S3_BUCKET", "")
S3_PREFIX = os.getenv("S3_PREFIX", "canary/proofs/")
S3_RETENTION_DAYS = int(os.getenv("S3_RETENTION_DAYS", "3650"))
S3_LEGAL_HOLD = os.getenv("S3_LEGAL_HOLD", "OFF")
AWS_REGION = os.getenv("AWS_REGION", "")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "1").lower() in ("1", "true", "yes")
LOG_FILE = os.getenv("LOG_FILE", "")


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Validate that required configuration is present.
    Returns dict of item -> ok.
    """
    checks = {"public_key": Path(PUBLIC_KEY_PATH).exists()}

    if STORE_BACKEND == "s3_object_lock":
        checks["s3_bucket"] = bool(S3_BUCKET)
    elif STORE_BACKEND not in ("directory", "sqlite"):
        checks["store_backend"] = False

    return checks


# ============================================================
# Feature Flags
# ============================================================

def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("CANARY_DEBUG", "").lower() in ("1", "true", "yes")
