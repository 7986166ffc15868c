"""Audit helper shared by every service.

Adds the event to the current session and flushes; the caller commits as
part of the same unit of work.
"""

from landsales.extensions import db
from landsales.models.audit import AuditEvent


def log_audit(entity_type, entity_id, action, actor_user_id=None, metadata=None):
    event = AuditEvent(
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        action=action,
        metadata_=metadata or {},
    )
    db.session.add(event)
    db.session.flush()
    return event
