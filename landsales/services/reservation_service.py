"""Reservation service — status changes, payment ledger, running balance.

Reservation lifecycle:
    issued -> financing_active -> annulled
    issued -> annulled -> issued
Staying in issued or financing_active is how a payment gets recorded.

What entering a status does to the rest of the deal lives in
Reservation.STATUS_POLICIES (lot status, schedule generation, contract
marker) and is looked up once per change.

The balance is never adjusted by deltas: after every ledger change
amount_paid is re-summed from the confirmed entries and
remaining_amount = max(0, total_amount_required - amount_paid).

Functions flush but do NOT commit — the caller commits.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from dateutil.relativedelta import relativedelta
from flask import current_app

from landsales.errors import (
    ConsistencyError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from landsales.extensions import db
from landsales.models.payment import Payment
from landsales.models.quotation import Quotation
from landsales.models.reservation import PaymentLedgerEntry, Reservation
from landsales.services import lot_service
from landsales.services.audit_service import log_audit
from landsales.utils import CENT, as_utc, sanitize, to_money, utcnow

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


@dataclass
class PaymentInfo:
    """Money received alongside a reservation status change.

    is_full_payment settles whatever is outstanding; otherwise `amount` is
    a partial payment. Either way a confirmed ledger entry is appended.
    """

    is_full_payment: bool = False
    amount: Optional[Decimal] = None
    paid_on: Optional[datetime] = None
    method: Optional[str] = None
    bank_name: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None


def _midnight_utc(day):
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def get_reservation(reservation_id):
    reservation = db.session.get(Reservation, reservation_id)
    if reservation is None or not reservation.is_active:
        raise NotFoundError(f"Reservation {reservation_id} not found.")
    return reservation


def list_reservations(scope=None, status=None):
    """Active reservations visible to `scope` (by quoting advisor)."""
    query = Reservation.query.join(Quotation).filter(Reservation.is_active.is_(True))
    if status:
        query = query.filter(Reservation.status == status)
    if scope is not None:
        query = scope.apply(query, Quotation.advisor_user_id)
    return query.order_by(Reservation.reservation_date.desc()).all()


# ─── Creation ──────────────────────────────────────────────


def create_reservation(quotation_id, amount, currency, payment_method,
                       reservation_date=None, bank_name=None, exchange_rate=None,
                       expires_at=None, actor_user_id=None, now=None):
    """Open a reservation against a quotation.

    The separation amount becomes total_amount_required; nothing is paid
    yet (payments arrive through change_status or the ledger).

    Args:
        quotation_id: Quotation UUID (not canceled).
        amount: Agreed separation amount, > 0.
        currency: One of Reservation.CURRENCIES.
        payment_method: One of Reservation.PAYMENT_METHODS.
        reservation_date: Defaults to today.
        exchange_rate: Snapshot; defaults to the quotation's.
        expires_at: Defaults to reservation_date + RESERVATION_HOLD_DAYS.

    Returns:
        The created Reservation (status issued).

    Raises:
        ValidationError: Broken quotation -> lead -> client chain, an
            active reservation already exists, or bad amount/enums.
    """
    quotation = db.session.get(Quotation, quotation_id)
    if quotation is None or quotation.status == "canceled":
        raise ValidationError(f"Quotation {quotation_id} does not exist or is canceled.")
    lead = quotation.lead
    if lead is None or not lead.is_active:
        raise ValidationError("The quotation's lead does not exist or is inactive.")
    client = lead.client
    if client is None or not client.is_active:
        raise ValidationError("The lead's client does not exist or is inactive.")

    active = Reservation.query.filter_by(quotation_id=quotation.id, is_active=True).first()
    if active is not None:
        raise ValidationError("This quotation already has an active reservation.")

    if currency not in Reservation.CURRENCIES:
        raise ValidationError(
            f"Invalid currency '{currency}'. Must be one of: {', '.join(Reservation.CURRENCIES)}"
        )
    if payment_method not in Reservation.PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method '{payment_method}'. "
            f"Must be one of: {', '.join(Reservation.PAYMENT_METHODS)}"
        )
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError("amount must be greater than zero.")

    now = now or utcnow()
    reservation_date = reservation_date or now.date()
    if exchange_rate is None:
        exchange_rate = quotation.exchange_rate
    if expires_at is None:
        hold_days = current_app.config.get("RESERVATION_HOLD_DAYS", 4)
        expires_at = _midnight_utc(reservation_date) + timedelta(days=hold_days)

    reservation = Reservation(
        client_id=client.id,
        quotation_id=quotation.id,
        reservation_date=reservation_date,
        currency=currency,
        status="issued",
        payment_method=payment_method,
        bank_name=sanitize(bank_name) or None,
        exchange_rate=Decimal(str(exchange_rate)),
        expires_at=expires_at,
        total_amount_required=amount,
        amount_paid=ZERO,
        remaining_amount=amount,
        contract_validation_status="none",
    )
    db.session.add(reservation)
    db.session.flush()

    log_audit(
        "reservation", reservation.id, "reservation.created", actor_user_id,
        metadata={"quotation_id": quotation.id, "amount": str(amount), "currency": currency},
    )
    logger.info(f"Reservation {reservation.id} created for quotation {quotation.code}")
    return reservation


# ─── Balance ───────────────────────────────────────────────


def _confirmed_total(reservation):
    return sum(
        (entry.amount for entry in reservation.ledger_entries if entry.is_confirmed),
        ZERO,
    )


def _recompute_balance(reservation):
    """Re-derive amount_paid / remaining_amount from the confirmed entries."""
    paid = to_money(_confirmed_total(reservation))
    total = to_money(reservation.total_amount_required)
    reservation.amount_paid = paid
    reservation.remaining_amount = max(ZERO, total - paid)
    reservation.updated_at = utcnow()
    db.session.flush()
    return reservation


def _outstanding(reservation):
    return max(ZERO, to_money(reservation.total_amount_required) - _confirmed_total(reservation))


def _append_entry(reservation, amount, status, paid_on=None, method=None,
                  bank_name=None, reference=None, notes=None):
    position = max((e.position for e in reservation.ledger_entries), default=0) + 1
    entry = PaymentLedgerEntry(
        reservation_id=reservation.id,
        position=position,
        paid_on=paid_on or utcnow(),
        amount=amount,
        method=method or reservation.payment_method,
        bank_name=sanitize(bank_name) or None,
        reference=sanitize(reference) or None,
        status=status,
        notes=sanitize(notes) or None,
    )
    reservation.ledger_entries.append(entry)
    db.session.flush()
    return entry


def _check_entry_fields(amount, status, method):
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero.")
    if status not in PaymentLedgerEntry.STATUSES:
        raise ValidationError(
            f"Invalid payment status '{status}'. "
            f"Must be one of: {', '.join(PaymentLedgerEntry.STATUSES)}"
        )
    if method is not None and method not in Reservation.PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method '{method}'.")


def _apply_payment(reservation, payment_info):
    """Turn a PaymentInfo into a confirmed ledger entry. Returns the entry or None."""
    outstanding = _outstanding(reservation)
    if payment_info.is_full_payment:
        if outstanding == ZERO:
            return None
        amount = outstanding
    elif payment_info.amount is not None:
        amount = to_money(payment_info.amount)
        if amount <= 0:
            raise ValidationError("Payment amount must be greater than zero.")
        if amount > outstanding:
            raise ValidationError(
                f"Payment of {amount} exceeds the outstanding balance of {outstanding}."
            )
    else:
        return None

    _check_entry_fields(amount, "confirmed", payment_info.method)
    return _append_entry(
        reservation,
        amount,
        "confirmed",
        paid_on=payment_info.paid_on,
        method=payment_info.method,
        bank_name=payment_info.bank_name,
        reference=payment_info.reference,
        notes=payment_info.notes,
    )


# ─── Status changes ────────────────────────────────────────


def change_status(reservation_id, new_status, payment_info=None, actor_user_id=None):
    """Apply a reservation status change and everything it implies.

    1. Validates the transition against Reservation.VALID_TRANSITIONS.
    2. Records the payment in `payment_info` (if any) as a confirmed ledger
       entry and re-derives the balance.
    3. On an actual status change, applies the status policy: moves the
       lot, generates the installment schedule when first entering
       financing_active, and sets or clears the contract marker.

    Returns:
        The updated Reservation.

    Raises:
        NotFoundError: Reservation missing or inactive.
        ValidationError: Unknown status or an invalid payment.
        InvalidTransitionError: Transition not allowed.
        ConsistencyError: The lot could not follow; the caller must roll back.
    """
    reservation = get_reservation(reservation_id)

    if new_status not in Reservation.STATUSES:
        raise ValidationError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(Reservation.STATUSES)}"
        )
    allowed = Reservation.VALID_TRANSITIONS.get(reservation.status, [])
    if new_status not in allowed:
        raise InvalidTransitionError("reservation", reservation.status, new_status, allowed)

    # The payment is validated before anything on the reservation changes.
    entry = None
    if payment_info is not None:
        entry = _apply_payment(reservation, payment_info)

    old_status = reservation.status
    reservation.status = new_status
    _recompute_balance(reservation)

    if new_status != old_status:
        policy = Reservation.STATUS_POLICIES[new_status]
        lot = reservation.lot
        try:
            if lot is None:
                raise NotFoundError("Reservation has no lot to update.")
            if lot.status != policy.lot_status:
                lot_service.apply_status(lot.id, policy.lot_status, actor_user_id)
        except (InvalidTransitionError, NotFoundError) as e:
            logger.error(
                f"Reservation {reservation.id} {old_status} -> {new_status}: "
                f"lot cascade failed: {e}"
            )
            raise ConsistencyError(
                f"Reservation {reservation.id} could not move its lot to "
                f"'{policy.lot_status}'; the status change was not applied."
            ) from e

        if policy.generates_schedule:
            generate_payment_schedule(reservation)

        reservation.contract_validation_status = (
            "pending_validation" if policy.contract_pending else "none"
        )
        db.session.flush()

    log_audit(
        "reservation", reservation.id, "reservation.status_changed", actor_user_id,
        metadata={
            "old_status": old_status,
            "new_status": new_status,
            "payment_entry_id": entry.id if entry else None,
            "amount_paid": str(reservation.amount_paid),
            "remaining_amount": str(reservation.remaining_amount),
        },
    )
    logger.info(
        f"Reservation {reservation.id} {old_status} -> {new_status} "
        f"(paid={reservation.amount_paid}, remaining={reservation.remaining_amount})"
    )
    return reservation


def generate_payment_schedule(reservation):
    """(Re)build the monthly installments from the quotation's financing terms.

    monthly = amount_financed / months_financed, rounded to cents; the last
    installment absorbs the rounding difference. Installment i is due i
    months after the quotation date.

    Existing installments are replaced, unless money has already been
    applied to any of them, in which case the schedule is left as is.

    Returns:
        list[Payment]: The reservation's installments.
    """
    quotation = reservation.quotation
    months = quotation.months_financed or 0
    financed = to_money(quotation.amount_financed or 0)
    if months <= 0 or financed <= 0:
        logger.info(f"Reservation {reservation.id}: nothing financed, no schedule")
        return []

    if any(payment.transactions for payment in reservation.payments):
        logger.warning(
            f"Reservation {reservation.id}: installments already have transactions, "
            f"keeping the existing schedule"
        )
        return list(reservation.payments)

    reservation.payments.clear()
    db.session.flush()

    monthly = (financed / months).quantize(CENT, rounding=ROUND_HALF_UP)
    anchor = quotation.quotation_date
    if isinstance(anchor, datetime):
        anchor = anchor.date()

    for number in range(1, months + 1):
        amount_due = monthly if number < months else financed - monthly * (months - 1)
        reservation.payments.append(
            Payment(
                installment_number=number,
                due_date=_midnight_utc(anchor + relativedelta(months=number)),
                amount_due=amount_due,
                paid=False,
            )
        )
    db.session.flush()

    log_audit(
        "reservation", reservation.id, "reservation.schedule_generated",
        metadata={"months": months, "monthly": str(monthly), "financed": str(financed)},
    )
    logger.info(f"Reservation {reservation.id}: {months} installments of {monthly}")
    return list(reservation.payments)


# ─── Ledger ────────────────────────────────────────────────


def _get_entry(reservation, entry_id):
    for entry in reservation.ledger_entries:
        if entry.id == entry_id:
            return entry
    raise NotFoundError(f"Payment entry {entry_id} not found in reservation {reservation.id}.")


def add_payment_entry(reservation_id, amount, paid_on=None, method=None,
                      bank_name=None, reference=None, status="pending",
                      notes=None, actor_user_id=None):
    """Append an entry to the payment ledger and re-derive the balance.

    Raises:
        NotFoundError: Reservation missing or inactive.
        ValidationError: Bad amount/status/method, or a confirmed entry
            that would pay more than is outstanding.
    """
    reservation = get_reservation(reservation_id)
    amount = to_money(amount)
    _check_entry_fields(amount, status, method)
    if status == "confirmed" and amount > _outstanding(reservation):
        raise ValidationError(
            f"Payment of {amount} exceeds the outstanding balance of {_outstanding(reservation)}."
        )

    entry = _append_entry(
        reservation, amount, status, paid_on=paid_on, method=method,
        bank_name=bank_name, reference=reference, notes=notes,
    )
    _recompute_balance(reservation)

    log_audit(
        "reservation", reservation.id, "reservation.payment_added", actor_user_id,
        metadata={"entry_id": entry.id, "amount": str(amount), "status": status},
    )
    return entry


def update_payment_entry(reservation_id, entry_id, actor_user_id=None, **changes):
    """Edit a ledger entry. Confirmed entries only accept status/notes changes.

    Args:
        changes: Any of paid_on, amount, method, bank_name, reference,
            status, notes.

    Raises:
        NotFoundError: Reservation or entry not found.
        ValidationError: Unknown field, a locked field on a confirmed entry,
            or a change that would overpay the reservation.
    """
    editable = {"paid_on", "amount", "method", "bank_name", "reference", "status", "notes"}
    unknown = set(changes) - editable
    if unknown:
        raise ValidationError(f"Unknown payment fields: {', '.join(sorted(unknown))}")

    reservation = get_reservation(reservation_id)
    entry = _get_entry(reservation, entry_id)

    if "amount" in changes:
        changes["amount"] = to_money(changes["amount"])
    if "paid_on" in changes:
        changes["paid_on"] = as_utc(changes["paid_on"])
    for field in ("bank_name", "reference", "notes"):
        if field in changes:
            changes[field] = sanitize(changes[field]) or None

    def current(field):
        # SQLite hands back naive datetimes
        value = getattr(entry, field)
        return as_utc(value) if field == "paid_on" else value

    changed = {k: v for k, v in changes.items() if current(k) != v}
    if entry.is_confirmed:
        locked = set(changed) - set(PaymentLedgerEntry.CONFIRMED_MUTABLE_FIELDS)
        if locked:
            raise ValidationError(
                f"A confirmed payment can only change its status or notes "
                f"(tried: {', '.join(sorted(locked))})."
            )

    new_amount = changed.get("amount", entry.amount)
    new_status = changed.get("status", entry.status)
    _check_entry_fields(new_amount, new_status, changed.get("method"))

    others = _confirmed_total(reservation) - (entry.amount if entry.is_confirmed else ZERO)
    if new_status == "confirmed" and others + new_amount > to_money(reservation.total_amount_required):
        raise ValidationError("Confirming this payment would exceed the amount required.")

    for field, value in changed.items():
        setattr(entry, field, value)
    entry.updated_at = utcnow()
    db.session.flush()
    _recompute_balance(reservation)

    if changed:
        log_audit(
            "reservation", reservation.id, "reservation.payment_updated", actor_user_id,
            metadata={"entry_id": entry.id, "fields": sorted(changed)},
        )
    return entry


def remove_payment_entry(reservation_id, entry_id, actor_user_id=None):
    """Remove a ledger entry and re-derive the balance. Returns the removed entry."""
    reservation = get_reservation(reservation_id)
    entry = _get_entry(reservation, entry_id)

    reservation.ledger_entries.remove(entry)
    db.session.flush()
    _recompute_balance(reservation)

    log_audit(
        "reservation", reservation.id, "reservation.payment_removed", actor_user_id,
        metadata={"entry_id": entry_id, "amount": str(entry.amount), "status": entry.status},
    )
    return entry


# ─── Other edits ───────────────────────────────────────────


def update_reservation(reservation_id, total_amount_required=None, expires_at=None,
                       bank_name=None, actor_user_id=None):
    """Re-quote the separation amount or edit hold/bank details.

    Raises:
        ValidationError: New total is not positive or is below what has
            already been paid.
    """
    reservation = get_reservation(reservation_id)

    changes = {}
    if total_amount_required is not None:
        total = to_money(total_amount_required, "total_amount_required")
        if total <= 0:
            raise ValidationError("total_amount_required must be greater than zero.")
        if total < _confirmed_total(reservation):
            raise ValidationError(
                f"total_amount_required cannot be below the {reservation.amount_paid} already paid."
            )
        changes["total_amount_required"] = [str(reservation.total_amount_required), str(total)]
        reservation.total_amount_required = total
    if expires_at is not None:
        if isinstance(expires_at, date) and not isinstance(expires_at, datetime):
            expires_at = _midnight_utc(expires_at)
        changes["expires_at"] = expires_at.isoformat()
        reservation.expires_at = expires_at
        reservation.notified = False
    if bank_name is not None:
        reservation.bank_name = sanitize(bank_name) or None
        changes["bank_name"] = reservation.bank_name

    _recompute_balance(reservation)
    if changes:
        log_audit(
            "reservation", reservation.id, "reservation.updated", actor_user_id,
            metadata=changes,
        )
    return reservation


def validate_contract(reservation_id, actor_user_id=None):
    reservation = get_reservation(reservation_id)
    if reservation.contract_validation_status != "pending_validation":
        raise ValidationError("The contract is not pending validation.")
    reservation.contract_validation_status = "validated"
    reservation.updated_at = utcnow()
    db.session.flush()
    log_audit("reservation", reservation.id, "reservation.contract_validated", actor_user_id)
    return reservation


def deactivate_reservation(reservation_id, actor_user_id=None):
    """Soft-delete a reservation. The lot is left where it is."""
    reservation = get_reservation(reservation_id)
    reservation.is_active = False
    reservation.updated_at = utcnow()
    db.session.flush()
    log_audit("reservation", reservation.id, "reservation.deactivated", actor_user_id)
    return reservation
