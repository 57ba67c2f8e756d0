"""
Logging configuration for the canary server.

Every log line can be emitted as a single JSON object so that the audit
trail of canary submissions can be shipped to a log aggregator as is.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

PLAIN_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

SEVERITY_LEVELS = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


class StructuredFormatter(logging.Formatter):
    """Render a record as one line of JSON."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "ts": created.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        rid = request_id_var.get()
        if rid:
            entry["request_id"] = rid
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        entry.update(getattr(record, "extra_fields", {}))
        return json.dumps(entry, default=str)


class AuditLogger:
    """
    Logger for canary chain events.

    Every submission ends in exactly one of canary_accepted,
    submission_rejected or persist_failed.
    """

    def __init__(self, name: str = "canarychain.audit"):
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, event_type: str, message: str, **fields) -> None:
        fields["event_type"] = event_type
        fields["request_id"] = request_id_var.get()
        self._logger.log(level, "%s: %s", event_type, message,
                         extra={"extra_fields": fields})

    def submission_received(self, document_hash: str, size: int) -> None:
        self._emit(logging.DEBUG, "SUBMISSION_RECEIVED", "proof submitted",
                   document_hash=document_hash, size=size)

    def submission_rejected(self, reason: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Record a submission refused for a submitter-side defect."""
        self._emit(logging.WARNING, "SUBMISSION_REJECTED", f"rejected with {reason}",
                   reason=reason, details=details)

    def canary_accepted(self, document_hash: str, deadline: str) -> None:
        self._emit(logging.INFO, "CANARY_ACCEPTED", f"new tip, deadline {deadline}",
                   document_hash=document_hash, deadline=deadline)

    def persist_failed(self, document_hash: str, error: str) -> None:
        self._emit(logging.ERROR, "PERSIST_FAILED", "valid proof could not be stored",
                   document_hash=document_hash, error=error)

    def chain_recovered(self, length: int, deadline: Optional[str]) -> None:
        self._emit(logging.INFO, "CHAIN_RECOVERED", f"{length} canaries replayed",
                   length=length, deadline=deadline)

    def security_event(self, event: str, severity: str = "medium", **details) -> None:
        level = SEVERITY_LEVELS.get(severity, logging.WARNING)
        self._emit(level, "SECURITY_EVENT", event,
                   security_event=event, severity=severity, **details)


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Install handlers on the root logger, replacing any already present.

    Args:
        level: Log level name
        json_format: Emit JSON lines instead of plain text
        log_file: Also write to this file when given
    """
    formatter = StructuredFormatter() if json_format else logging.Formatter(PLAIN_FORMAT)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level.upper())


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request ID to the current context, generating one if needed."""
    rid = request_id or uuid.uuid4().hex
    request_id_var.set(rid)
    return rid


audit_log = AuditLogger()
