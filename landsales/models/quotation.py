"""Quotation model — a priced offer tying a Lead to one Lot.

Pricing and area are snapshotted at quotation time so later lot edits
don't rewrite history.
"""

import uuid

from landsales.extensions import db


class Quotation(db.Model):
    __tablename__ = "quotations"

    STATUSES = ["issued", "accepted", "canceled"]

    # -- Lot status each quotation status implies (applied in quotation_service) --
    LOT_STATUS_FOR = {
        "issued": "quoted",
        "accepted": "reserved",
        "canceled": "available",
    }

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    code = db.Column(
        db.String(20), unique=True, nullable=False
    )  # COT-YYYY-NNNNN
    lead_id = db.Column(
        db.String(36), db.ForeignKey("leads.id"), nullable=False, index=True
    )
    lot_id = db.Column(
        db.String(36), db.ForeignKey("lots.id"), nullable=False, index=True
    )
    advisor_user_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False
    )
    status = db.Column(db.String(20), default="issued", nullable=False)
    total_price = db.Column(db.Numeric(18, 2), nullable=False)
    discount = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    final_price = db.Column(db.Numeric(18, 2), nullable=False)
    down_payment = db.Column(db.Numeric(18, 2), nullable=False)  # percentage
    amount_financed = db.Column(db.Numeric(18, 2), nullable=False)
    months_financed = db.Column(db.Integer, nullable=False)
    area_at_quotation = db.Column(db.Numeric(18, 2), nullable=False)
    price_per_m2_at_quotation = db.Column(db.Numeric(18, 2), nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    exchange_rate = db.Column(db.Numeric(18, 6), nullable=False, default=1)
    quotation_date = db.Column(db.Date, nullable=False)
    valid_until = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    lead = db.relationship("Lead", back_populates="quotations")
    lot = db.relationship("Lot", back_populates="quotations")
    advisor = db.relationship("User")
    reservations = db.relationship(
        "Reservation", back_populates="quotation", lazy="dynamic"
    )

    def __repr__(self):
        return f"<Quotation {self.code} ({self.status})>"
