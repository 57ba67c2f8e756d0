"""
Durable proof storage.

A ProofStore keeps every accepted proof, keyed by its deadline, so the
full chain can be replayed in order after a restart. store() must not
return until the proof is durable; any failure is reported as StoreError.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

PROOF_SUFFIX = ".proof"
DEADLINE_KEY_FORMAT = "%Y%m%dT%H%M%SZ"


class StoreError(Exception):
    """A proof could not be durably stored or read back."""


def deadline_key(deadline: datetime) -> str:
    """Storage key for a deadline; lexicographic order equals chronological order."""
    return deadline.astimezone(timezone.utc).strftime(DEADLINE_KEY_FORMAT)


class ProofStore(ABC):
    """Append-only store of raw proof documents."""

    @abstractmethod
    def store(self, document: str, deadline: datetime) -> None:
        """
        Durably store a proof under its deadline.

        Raises:
            StoreError: if the proof is not known to be durable
        """
        pass

    @abstractmethod
    def documents(self) -> List[str]:
        """Return every stored proof, ordered by deadline."""
        pass

    def latest(self) -> Optional[str]:
        """Return the proof with the greatest deadline, or None when empty."""
        docs = self.documents()
        return docs[-1] if docs else None


class DirectoryProofStore(ProofStore):
    """
    One file per proof in a directory, named after the proof deadline.

    Files are written to a temporary name, fsynced and renamed into place,
    so a crash never leaves a truncated proof under a real name.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path_for(self, deadline: datetime) -> Path:
        return self.directory / f"{deadline_key(deadline)}{PROOF_SUFFIX}"

    def store(self, document: str, deadline: datetime) -> None:
        path = self._path_for(deadline)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            if path.exists():
                raise StoreError(f"Proof already stored for deadline {deadline_key(deadline)}")

            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".incoming-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                    f.write(document)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
            self._fsync_directory()
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}") from e

        logger.debug("Stored proof %s", path.name)

    def _fsync_directory(self) -> None:
        # Makes the rename itself durable; not supported on every platform.
        if not hasattr(os, "O_DIRECTORY"):
            return
        dir_fd = os.open(self.directory, os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)

    def documents(self) -> List[str]:
        if not self.directory.exists():
            return []
        try:
            paths = sorted(p for p in self.directory.iterdir()
                           if p.is_file() and p.name.endswith(PROOF_SUFFIX))
            docs = []
            for p in paths:
                with open(p, "r", encoding="utf-8", newline="") as f:
                    docs.append(f.read())
            return docs
        except OSError as e:
            raise StoreError(f"Failed to read proofs from {self.directory}: {e}") from e
