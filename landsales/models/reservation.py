"""Reservation models.

- Reservation: a buyer's separation payment against a Quotation, with a
  running balance (total_amount_required / amount_paid / remaining_amount).
- PaymentLedgerEntry: append-only history of payment attempts. Only
  confirmed entries count toward amount_paid; reservation_service re-derives
  the balance from the full confirmed subset after every ledger change.
"""

import uuid
from collections import namedtuple

from landsales.extensions import db

# What entering a reservation status does to the rest of the deal.
StatusPolicy = namedtuple(
    "StatusPolicy", ["lot_status", "generates_schedule", "contract_pending"]
)


class Reservation(db.Model):
    __tablename__ = "reservations"

    # -- Valid statuses --
    # financing_active: the deal moved to its installment phase.
    # annulled: the deal was voided and the lot released.
    STATUSES = ["issued", "financing_active", "annulled"]

    # -- Valid status transitions (enforced in reservation_service) --
    # Staying in issued / financing_active is how a payment gets recorded.
    VALID_TRANSITIONS = {
        "issued": ["issued", "financing_active", "annulled"],
        "financing_active": ["financing_active", "annulled"],
        "annulled": ["issued"],
    }

    # -- Cascade applied when a reservation enters a status --
    STATUS_POLICIES = {
        "issued": StatusPolicy(
            lot_status="quoted", generates_schedule=False, contract_pending=False
        ),
        "financing_active": StatusPolicy(
            lot_status="reserved", generates_schedule=True, contract_pending=True
        ),
        "annulled": StatusPolicy(
            lot_status="available", generates_schedule=False, contract_pending=False
        ),
    }

    CURRENCIES = ["PEN", "USD"]

    PAYMENT_METHODS = ["cash", "bank_deposit", "bank_transfer"]

    CONTRACT_VALIDATION_STATUSES = ["none", "pending_validation", "validated"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id"), nullable=False
    )
    quotation_id = db.Column(
        db.String(36), db.ForeignKey("quotations.id"), nullable=False, index=True
    )
    reservation_date = db.Column(db.Date, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="PEN")
    status = db.Column(db.String(20), default="issued", nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)
    bank_name = db.Column(db.String(255), nullable=True)
    exchange_rate = db.Column(
        db.Numeric(18, 6), nullable=False
    )  # snapshot taken at creation, never recomputed
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    notified = db.Column(db.Boolean, default=False, nullable=False)
    total_amount_required = db.Column(db.Numeric(18, 2), nullable=False)
    amount_paid = db.Column(db.Numeric(18, 2), nullable=False, default=0)
    remaining_amount = db.Column(db.Numeric(18, 2), nullable=False)
    contract_validation_status = db.Column(
        db.String(30), default="none", nullable=False
    )  # none | pending_validation | validated
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
    client = db.relationship("Client", back_populates="reservations")
    quotation = db.relationship("Quotation", back_populates="reservations")
    ledger_entries = db.relationship(
        "PaymentLedgerEntry",
        back_populates="reservation",
        order_by="PaymentLedgerEntry.position",
        cascade="all, delete-orphan",
    )
    payments = db.relationship(
        "Payment",
        back_populates="reservation",
        order_by="Payment.due_date",
        cascade="all, delete-orphan",
    )

    @property
    def lot(self):
        return self.quotation.lot if self.quotation else None

    def __repr__(self):
        return f"<Reservation {self.id[:8]} ({self.status})>"


class PaymentLedgerEntry(db.Model):
    __tablename__ = "reservation_ledger_entries"

    STATUSES = ["pending", "confirmed", "rejected"]

    # -- Fields that may still change once an entry is confirmed --
    CONFIRMED_MUTABLE_FIELDS = ["status", "notes"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reservation_id = db.Column(
        db.String(36),
        db.ForeignKey("reservations.id"),
        nullable=False,
        index=True,
    )
    position = db.Column(db.Integer, nullable=False)  # append order
    paid_on = db.Column(db.DateTime(timezone=True), nullable=False)
    amount = db.Column(db.Numeric(18, 2), nullable=False)
    method = db.Column(db.String(20), nullable=False)
    bank_name = db.Column(db.String(255), nullable=True)
    reference = db.Column(db.String(255), nullable=True)
    status = db.Column(
        db.String(20), default="pending", nullable=False
    )  # pending | confirmed | rejected
    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    reservation = db.relationship("Reservation", back_populates="ledger_entries")

    @property
    def is_confirmed(self):
        return self.status == "confirmed"

    def to_dict(self):
        return {
            "id": self.id,
            "date": self.paid_on.isoformat() if self.paid_on else None,
            "amount": str(self.amount),
            "method": self.method,
            "bank_name": self.bank_name,
            "reference": self.reference,
            "status": self.status,
            "notes": self.notes,
        }

    def __repr__(self):
        return f"<PaymentLedgerEntry {self.amount} ({self.status})>"
