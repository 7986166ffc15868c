"""Installment models.

- Payment: one scheduled installment of a financed reservation.
- PaymentTransaction: money received, applied to one or more installments.
  An installment is paid once the transactions covering it add up to its
  amount_due.
"""

import uuid

from landsales.extensions import db

payment_transaction_payments = db.Table(
    "payment_transaction_payments",
    db.Column(
        "payment_transaction_id",
        db.String(36),
        db.ForeignKey("payment_transactions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    db.Column(
        "payment_id",
        db.String(36),
        db.ForeignKey("payments.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reservation_id = db.Column(
        db.String(36),
        db.ForeignKey("reservations.id"),
        nullable=False,
        index=True,
    )
    installment_number = db.Column(db.Integer, nullable=False)
    due_date = db.Column(db.DateTime(timezone=True), nullable=False)
    amount_due = db.Column(db.Numeric(18, 2), nullable=False)
    paid = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    reservation = db.relationship("Reservation", back_populates="payments")
    transactions = db.relationship(
        "PaymentTransaction",
        secondary=payment_transaction_payments,
        back_populates="payments",
    )

    def __repr__(self):
        return f"<Payment #{self.installment_number} {self.amount_due} paid={self.paid}>"


class PaymentTransaction(db.Model):
    __tablename__ = "payment_transactions"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    reservation_id = db.Column(
        db.String(36),
        db.ForeignKey("reservations.id"),
        nullable=False,
        index=True,
    )
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False)
    amount_paid = db.Column(db.Numeric(18, 2), nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)
    reference_number = db.Column(db.String(255), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    reservation = db.relationship("Reservation")
    payments = db.relationship(
        "Payment",
        secondary=payment_transaction_payments,
        back_populates="transactions",
    )

    def __repr__(self):
        return f"<PaymentTransaction {self.amount_paid} ({self.payment_method})>"
