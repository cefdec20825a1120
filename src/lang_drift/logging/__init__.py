"""Structured logging utilities."""

from .audit import (
    AUDIT_FILE_NAME,
    AuditEvent,
    JsonlAuditLogger,
    build_event,
    new_run_id,
    sanitize_metadata,
    utc_timestamp,
)

__all__ = [
    "AUDIT_FILE_NAME",
    "AuditEvent",
    "JsonlAuditLogger",
    "build_event",
    "new_run_id",
    "sanitize_metadata",
    "utc_timestamp",
]
