"""User model.

Advisors, supervisors and managers. Role resolution and login live outside
this package; the pipeline only stores who is assigned to, or acted on, a
record.
"""

import uuid

from landsales.extensions import db


class User(db.Model):
    __tablename__ = "users"

    ROLES = [
        "admin",
        "manager",
        "supervisor",
        "sales_advisor",
        "finance_manager",
    ]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    email = db.Column(db.String(255), unique=True, nullable=False)
    full_name = db.Column(db.String(255))
    role = db.Column(
        db.String(50), default="sales_advisor", nullable=False
    )  # admin | manager | supervisor | sales_advisor | finance_manager
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    assigned_leads = db.relationship(
        "Lead",
        foreign_keys="Lead.assigned_to_user_id",
        back_populates="assigned_to",
        lazy="dynamic",
    )
    audit_events = db.relationship(
        "AuditEvent", back_populates="actor", lazy="dynamic"
    )

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
