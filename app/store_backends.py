
import os
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from canarychain.store import DirectoryProofStore, ProofStore, StoreError, deadline_key, PROOF_SUFFIX

from .db import SqliteProofStore


class S3ObjectLockProofStore(ProofStore):
    """Writes each proof as a separate immutable object to an S3 bucket with Object Lock.
    Requires bucket with Object Lock enabled. An existing key is never overwritten.
    Docs: https://docs.aws.amazon.com/AmazonS3/latest/userguide/object-lock.html
    """
    def __init__(self, bucket: str, prefix: str, retention_days: int, legal_hold: str = "OFF",
                 region: Optional[str] = None, client=None):
        self.bucket = bucket
        self.prefix = prefix.rstrip("/") + "/"
        self.retention_days = retention_days
        self.legal_hold = legal_hold
        self._region = region
        self._client = client

    def _get_client(self):
        if self._client is None:
            try:
                import boto3
            except ImportError as e:
                raise StoreError("boto3 required for S3 Object Lock storage. Install with: pip install canarychain[aws]") from e
            self._client = boto3.client("s3", region_name=self._region or None)
        return self._client

    @staticmethod
    def _client_errors():
        try:
            from botocore.exceptions import BotoCoreError, ClientError
        except ImportError:
            return ()
        return (BotoCoreError, ClientError)

    def _key_for(self, deadline: datetime) -> str:
        return f"{self.prefix}{deadline_key(deadline)}{PROOF_SUFFIX}"

    def _exists(self, s3, key: str) -> bool:
        try:
            s3.head_object(Bucket=self.bucket, Key=key)
        except self._client_errors() as e:
            code = getattr(e, "response", {}).get("Error", {}).get("Code")
            if code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise
        return True

    def store(self, document: str, deadline: datetime) -> None:
        key = self._key_for(deadline)
        retain_until = datetime.now(timezone.utc) + timedelta(days=int(self.retention_days))
        try:
            s3 = self._get_client()
            if self._exists(s3, key):
                raise StoreError(f"Proof already stored for deadline {deadline_key(deadline)}")
            # S3 answers 412 if the key appeared after the head check
            s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=document.encode("utf-8"),
                ContentType="text/plain; charset=utf-8",
                IfNoneMatch="*",
                ObjectLockMode="COMPLIANCE",
                ObjectLockRetainUntilDate=retain_until,
                ObjectLockLegalHoldStatus=self.legal_hold
            )
        except self._client_errors() as e:
            raise StoreError(f"Failed to put s3://{self.bucket}/{key}: {e}") from e

    def documents(self) -> List[str]:
        try:
            s3 = self._get_client()
            keys = []
            paginator = s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                for obj in page.get("Contents", []):
                    if obj["Key"].endswith(PROOF_SUFFIX):
                        keys.append(obj["Key"])
            docs = []
            for key in sorted(keys):
                body = s3.get_object(Bucket=self.bucket, Key=key)["Body"].read()
                docs.append(body.decode("utf-8"))
            return docs
        except self._client_errors() as e:
            raise StoreError(f"Failed to list s3://{self.bucket}/{self.prefix}: {e}") from e


def get_proof_store(
    backend: str = "directory",
    store_dir: str = "data/proofs",
    db_path: str = "data/canary.db",
    s3_bucket: Optional[str] = None,
    s3_prefix: str = "canary/proofs/",
    s3_retention_days: int = 3650,
    s3_legal_hold: str = "OFF",
    region: Optional[str] = None
) -> ProofStore:
    """
    Factory function to create the configured proof store.

    Args:
        backend: "directory", "sqlite" or "s3_object_lock"
    """
    if backend == "s3_object_lock":
        bucket = s3_bucket or os.environ["S3_BUCKET"]
        return S3ObjectLockProofStore(bucket=bucket, prefix=s3_prefix,
                                      retention_days=s3_retention_days,
                                      legal_hold=s3_legal_hold, region=region)
    if backend == "sqlite":
        return SqliteProofStore(db_path)
    if backend == "directory":
        return DirectoryProofStore(store_dir)
    raise ValueError(f"Unknown proof store backend: {backend}")
