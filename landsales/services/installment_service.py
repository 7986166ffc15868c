"""Installment service — money applied to the monthly schedule.

A PaymentTransaction covers one or more installments. An installment is
paid once the transactions linked to it add up to its amount_due.
pending_installments() instead pours every transaction of the reservation
over the schedule in due-date order, which is how the collections view
shows partially covered installments.

Functions flush but do NOT commit — the caller commits.
"""

import logging
from collections import namedtuple
from decimal import Decimal

from landsales.errors import NotFoundError, ValidationError
from landsales.extensions import db
from landsales.models.payment import Payment, PaymentTransaction
from landsales.models.reservation import Reservation
from landsales.services.audit_service import log_audit
from landsales.utils import sanitize, to_money, utcnow

logger = logging.getLogger(__name__)

PendingInstallment = namedtuple(
    "PendingInstallment", ["payment", "amount_pending"]
)


def refresh_paid_flags(payments):
    for payment in payments:
        covered = sum((t.amount_paid for t in payment.transactions), Decimal("0"))
        payment.paid = covered >= payment.amount_due
    db.session.flush()


def record_transaction(reservation_id, payment_ids, amount, payment_date=None,
                       payment_method="cash", reference_number=None, actor_user_id=None):
    """Record money received against specific installments.

    Raises:
        NotFoundError: Reservation missing or inactive.
        ValidationError: No installments given, an installment that belongs
            to another reservation, bad amount or method.
    """
    reservation = db.session.get(Reservation, reservation_id)
    if reservation is None or not reservation.is_active:
        raise NotFoundError(f"Reservation {reservation_id} not found.")

    if not payment_ids:
        raise ValidationError("At least one installment is required.")
    payments = Payment.query.filter(Payment.id.in_(list(payment_ids))).all()
    if len(payments) != len(set(payment_ids)) or any(
        p.reservation_id != reservation.id for p in payments
    ):
        raise ValidationError("Every installment must belong to this reservation.")

    amount = to_money(amount, "amount_paid")
    if amount <= 0:
        raise ValidationError("amount_paid must be greater than zero.")
    if payment_method not in Reservation.PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method '{payment_method}'.")

    transaction = PaymentTransaction(
        reservation_id=reservation.id,
        payment_date=payment_date or utcnow(),
        amount_paid=amount,
        payment_method=payment_method,
        reference_number=sanitize(reference_number) or None,
        payments=payments,
    )
    db.session.add(transaction)
    db.session.flush()
    refresh_paid_flags(payments)
    logger.info(
        f"Transaction {transaction.id} of {amount} applied to "
        f"{len(payments)} installment(s) of reservation {reservation.id}"
    )

    log_audit(
        "reservation", reservation.id, "reservation.transaction_recorded", actor_user_id,
        metadata={
            "transaction_id": transaction.id,
            "amount": str(amount),
            "installments": sorted(p.installment_number for p in payments),
        },
    )
    return transaction


def delete_transaction(transaction_id, actor_user_id=None):
    transaction = db.session.get(PaymentTransaction, transaction_id)
    if transaction is None:
        raise NotFoundError(f"Transaction {transaction_id} not found.")

    payments = list(transaction.payments)
    reservation_id = transaction.reservation_id
    amount = transaction.amount_paid
    db.session.delete(transaction)
    db.session.flush()
    for payment in payments:
        db.session.refresh(payment)
    refresh_paid_flags(payments)

    log_audit(
        "reservation", reservation_id, "reservation.transaction_deleted", actor_user_id,
        metadata={"transaction_id": transaction_id, "amount": str(amount)},
    )


def pending_installments(reservation_id):
    """Installments not yet covered, after a due-date waterfall of all money received.

    Returns:
        list[PendingInstallment]: (payment, amount still owed on it).
    """
    reservation = db.session.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFoundError(f"Reservation {reservation_id} not found.")

    received = sum(
        (t.amount_paid for t in PaymentTransaction.query.filter_by(reservation_id=reservation.id)),
        Decimal("0"),
    )

    pending = []
    for payment in reservation.payments:
        applied = min(received, payment.amount_due)
        received -= applied
        if applied < payment.amount_due:
            pending.append(PendingInstallment(payment, to_money(payment.amount_due - applied)))
    return pending
