"""Audit event model.

Logs every state change in the pipeline (lead status, lot status,
reservation status, ledger edits, sweeps) for the activity feed and for
out-of-band repair.
"""

import uuid

from landsales.extensions import db


class AuditEvent(db.Model):
    __tablename__ = "audit_events"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    entity_type = db.Column(db.String(50), nullable=False)  # lead | lot | reservation ...
    entity_id = db.Column(db.String(36), nullable=True, index=True)
    actor_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )  # None for system actions (sweep)
    action = db.Column(db.String(255), nullable=False)  # e.g. "lead.recycled"
    metadata_ = db.Column(
        "metadata", db.JSON, default=dict
    )  # extra context, named metadata_ to avoid Python builtin clash
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    actor = db.relationship("User", back_populates="audit_events")

    def __repr__(self):
        return f"<AuditEvent {self.action}>"
