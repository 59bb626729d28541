"""Audit trail recording for tablesync."""

from tablesync.audit.recorder import AuditRecorder, redact
from tablesync.audit.sinks import AuditSink, BaseAuditSink, MemoryAuditSink, SqliteAuditSink

__all__ = [
    "AuditRecorder",
    "redact",
    "AuditSink",
    "BaseAuditSink",
    "MemoryAuditSink",
    "SqliteAuditSink",
]
