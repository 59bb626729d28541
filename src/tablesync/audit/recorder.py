"""Audit recorder with type-aware redaction."""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from tablesync.audit.sinks import AuditSink
from tablesync.config import ProjectSettings
from tablesync.models import AuditEntry, AuditEvent, FieldSpec

logger = logging.getLogger(__name__)

_FALSE_STRINGS = {"", "0", "false", "off", "no"}

# Events that carry a previous value
_EVENTS_WITH_OLD_VALUE = {AuditEvent.SET.value, AuditEvent.MOVE.value}


def is_truthy(value: Any) -> bool:
    """Truth value of a raw field value as submitted by a client."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def redact(
    event: str,
    value: Any,
    old_value: Any,
    field: Optional[FieldSpec],
    field_name: Optional[str],
    mask: str,
) -> Tuple[str, Optional[str]]:
    """Normalise and mask a value pair for the audit trail.

    Args:
        event: Audit event value
        value: Raw new value
        old_value: Raw previous value
        field: Schema field the values belong to, if known
        field_name: Field name, used when no schema field is known
        mask: Replacement for sensitive values

    Returns:
        Tuple of (value, old_value); old_value is None for events without one
    """
    has_old = event in _EVENTS_WITH_OLD_VALUE
    name = field.name if field is not None else field_name

    if field is not None and field.is_boolean:
        new_text = "1" if is_truthy(value) else "0"
        if event == AuditEvent.SET.value:
            old_text = "1" if is_truthy(old_value) else "0"
        else:
            old_text = _as_text(old_value)
    elif (field is not None and field.is_sensitive) or name == "password":
        new_text = mask if _as_text(value) else ""
        old_text = mask if _as_text(old_value) else ""
    else:
        new_text = _as_text(value)
        old_text = _as_text(old_value)

    return new_text, (old_text if has_old else None)


@dataclass
class PendingEntry:
    """Raw audit data captured during a mutation, redacted on flush."""

    event: AuditEvent
    composite_id: str
    value: Any = None
    old_value: Any = None
    field: Optional[FieldSpec] = None


class AuditRecorder:
    """Turns mutations into redacted audit entries handed to a sink.

    Enablement is read from ``settings`` on every call, so toggling
    ``settings.audit_enabled`` takes effect immediately.
    """

    def __init__(self, sink: AuditSink, settings: Optional[ProjectSettings] = None):
        self.sink = sink
        self.settings = settings or ProjectSettings()

    @property
    def enabled(self) -> bool:
        return self.settings.audit_enabled

    def build(self, table: str, pending: PendingEntry) -> AuditEntry:
        """Redacted entry for a pending record."""
        event = AuditEvent(pending.event).value
        field_name = pending.composite_id.rsplit("/", 1)[-1]
        value, old_value = redact(
            event,
            pending.value,
            pending.old_value,
            pending.field,
            field_name,
            self.settings.audit_mask,
        )
        return AuditEntry(
            table=table,
            event=event,
            composite_id=pending.composite_id,
            value=value,
            old_value=old_value,
        )

    def record(
        self,
        table: str,
        event: AuditEvent,
        composite_id: str,
        value: Any = None,
        old_value: Any = None,
        field: Optional[FieldSpec] = None,
    ) -> Optional[AuditEntry]:
        """Record one change; returns None when auditing is disabled."""
        entries = self.flush(table, [PendingEntry(event, composite_id, value, old_value, field)])
        return entries[0] if entries else None

    def flush(self, table: str, pending: List[PendingEntry]) -> List[AuditEntry]:
        """Record several changes as one append to the sink."""
        if not self.enabled or not pending:
            return []
        entries = [self.build(table, p) for p in pending]
        try:
            self.sink.append_many(entries)
        except Exception as e:
            logger.error(f"Failed to append {len(entries)} audit entries for table '{table}': {e}")
            raise
        return entries
