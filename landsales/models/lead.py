"""Lead model — a prospective buyer tracked from capture to close.

Pipeline: registered -> attended -> in_follow_up -> completed | canceled
Any open lead becomes expired once expiration_date passes (see the sweep in
lead_service). Expired and canceled leads can be recycled back to registered.

Leads are never deleted; is_active=False hides them from every active query.
"""

import uuid

from landsales.extensions import db


class Lead(db.Model):
    __tablename__ = "leads"

    # -- Valid statuses for pipeline tracking --
    STATUSES = [
        "registered",
        "attended",
        "in_follow_up",
        "completed",
        "canceled",
        "expired",
    ]

    # -- Leads in these statuses are left alone by the expiration sweep --
    CLOSED_STATUSES = ["expired", "completed", "canceled"]

    # -- Only these statuses require (and keep) a completion_reason --
    FINISHED_STATUSES = ["completed", "canceled"]

    # -- Recycle is only allowed from these --
    RECYCLABLE_STATUSES = ["expired", "canceled"]

    CAPTURE_SOURCES = [
        "company",
        "personal_facebook",
        "real_estate_fair",
        "institutional",
        "loyalty",
    ]

    COMPLETION_REASONS = ["not_interested", "in_follow_up", "sale"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    code = db.Column(
        db.String(20), unique=True, nullable=False
    )  # LEAD-YYYY-NNNNN
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id"), nullable=True, index=True
    )
    assigned_to_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True, index=True
    )
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id"), nullable=True
    )
    status = db.Column(
        db.String(20), default="registered", nullable=False, index=True
    )
    capture_source = db.Column(db.String(50), nullable=False)
    completion_reason = db.Column(
        db.String(50), nullable=True
    )  # only for completed | canceled
    cancellation_reason = db.Column(db.Text, nullable=True)
    entry_date = db.Column(db.DateTime(timezone=True), nullable=False)
    expiration_date = db.Column(
        db.DateTime(timezone=True), nullable=False, index=True
    )
    recycle_count = db.Column(db.Integer, default=0, nullable=False)
    last_recycled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_recycled_by_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=True
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    client = db.relationship("Client", back_populates="leads")
    assigned_to = db.relationship(
        "User",
        foreign_keys=[assigned_to_user_id],
        back_populates="assigned_leads",
    )
    last_recycled_by = db.relationship(
        "User", foreign_keys=[last_recycled_by_user_id]
    )
    project = db.relationship("Project")
    referral = db.relationship(
        "Referral", back_populates="lead", uselist=False
    )
    quotations = db.relationship(
        "Quotation", back_populates="lead", lazy="dynamic"
    )

    def __repr__(self):
        return f"<Lead {self.code} ({self.status})>"


class Referral(db.Model):
    """A client referring another client; the referred client gets a lead."""

    __tablename__ = "referrals"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    referrer_client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id"), nullable=False
    )
    referred_client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id"), nullable=False
    )
    lead_id = db.Column(
        db.String(36), db.ForeignKey("leads.id"), nullable=False, unique=True
    )
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    referrer = db.relationship("Client", foreign_keys=[referrer_client_id])
    referred = db.relationship("Client", foreign_keys=[referred_client_id])
    lead = db.relationship("Lead", back_populates="referral")

    def __repr__(self):
        return f"<Referral {self.referrer_client_id} -> {self.referred_client_id}>"
