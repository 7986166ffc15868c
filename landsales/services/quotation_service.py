"""Quotation service — pricing snapshot and the quotation -> lot cascade.

A quotation can only be issued for an active, available lot with no other
issued quotation. Issuing moves the lot to quoted; later quotation status
changes move the lot through lot_service (see Quotation.LOT_STATUS_FOR),
so an impossible lot transition rejects the whole change.

Functions flush but do NOT commit — the caller commits.
"""

import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from flask import current_app

from landsales.errors import NotFoundError, ValidationError
from landsales.extensions import db
from landsales.models.lead import Lead
from landsales.models.lot import Lot
from landsales.models.quotation import Quotation
from landsales.models.user import User
from landsales.services import lot_service
from landsales.services.audit_service import log_audit
from landsales.services.code_service import next_quotation_code
from landsales.utils import CENT, to_money, utcnow

logger = logging.getLogger(__name__)

QUOTATION_VALID_DAYS = 7


def _percent_of(amount, percentage):
    return (amount * Decimal(percentage) / Decimal(100)).quantize(CENT)


def create_quotation(lead_id, lot_id, advisor_id, months_financed, down_payment,
                     discount=0, currency=None, exchange_rate=None,
                     quotation_date=None, valid_until=None, now=None):
    """Issue a quotation for a lot.

    Args:
        lead_id: Active Lead UUID.
        lot_id: Lot UUID (active, available, active block and project).
        advisor_id: Quoting advisor's User UUID.
        months_financed: Number of monthly installments (0 = cash sale).
        down_payment: Down payment as a percentage of the final price.
        discount: Absolute discount off the lot price.
        currency: Defaults to the project's currency.
        exchange_rate: Snapshot; defaults to DEFAULT_EXCHANGE_RATE.
        quotation_date: Date the schedule is anchored to; defaults to today.

    Returns:
        The created Quotation (lot now quoted).

    Raises:
        ValidationError: Any precondition above fails.
    """
    lead = db.session.get(Lead, lead_id)
    if lead is None or not lead.is_active:
        raise ValidationError(f"Lead {lead_id} does not exist or is inactive.")

    advisor = db.session.get(User, advisor_id)
    if advisor is None or not advisor.is_active:
        raise ValidationError(f"Advisor {advisor_id} does not exist or is inactive.")

    lot = db.session.get(Lot, lot_id)
    if lot is None:
        raise ValidationError(f"Lot {lot_id} does not exist.")
    if lot.status != "available":
        raise ValidationError(f"Lot is not available for quoting (status: {lot.status}).")
    project = lot.project
    if not (lot.is_active and lot.block.is_active and project and project.is_active):
        raise ValidationError("The lot, its block or its project is inactive.")

    existing = Quotation.query.filter_by(lot_id=lot.id, status="issued").first()
    if existing is not None:
        raise ValidationError(f"Lot already has an issued quotation ({existing.code}).")

    try:
        months_financed = int(months_financed)
    except (TypeError, ValueError):
        raise ValidationError(f"months_financed must be a whole number, got {months_financed!r}.")
    if months_financed < 0:
        raise ValidationError("months_financed cannot be negative.")
    try:
        down_payment = Decimal(str(down_payment))
    except InvalidOperation:
        raise ValidationError(f"down_payment must be a number, got {down_payment!r}.")
    if not down_payment.is_finite() or not Decimal(0) <= down_payment <= Decimal(100):
        raise ValidationError("down_payment must be a percentage between 0 and 100.")

    total_price = to_money(lot.price, "price")
    discount = to_money(discount, "discount")
    if discount < 0 or discount >= total_price:
        raise ValidationError("discount must be zero or positive and below the lot price.")
    if project.max_discount_percentage is not None:
        limit = _percent_of(total_price, project.max_discount_percentage)
        if discount > limit:
            raise ValidationError(
                f"discount exceeds the project maximum of {project.max_discount_percentage}%."
            )

    final_price = total_price - discount
    amount_financed = final_price - _percent_of(final_price, down_payment)

    now = now or utcnow()
    quotation_date = quotation_date or now.date()
    if exchange_rate is None:
        exchange_rate = current_app.config.get("DEFAULT_EXCHANGE_RATE", "1.00")

    quotation = Quotation(
        code=next_quotation_code(now=now),
        lead_id=lead.id,
        lot_id=lot.id,
        advisor_user_id=advisor.id,
        status="issued",
        total_price=total_price,
        discount=discount,
        final_price=final_price,
        down_payment=down_payment,
        amount_financed=amount_financed,
        months_financed=months_financed,
        area_at_quotation=lot.area,
        price_per_m2_at_quotation=(final_price / Decimal(lot.area)).quantize(CENT),
        currency=currency or project.currency,
        exchange_rate=Decimal(str(exchange_rate)),
        quotation_date=quotation_date,
        valid_until=valid_until or now + timedelta(days=QUOTATION_VALID_DAYS),
    )
    db.session.add(quotation)
    db.session.flush()

    lot_service.apply_status(lot.id, "quoted", advisor.id)

    log_audit(
        "quotation", quotation.id, "quotation.created", advisor.id,
        metadata={"code": quotation.code, "lot_id": lot.id, "final_price": str(final_price)},
    )
    logger.info(f"Quotation {quotation.code} issued for lot {lot.lot_number}")
    return quotation


def change_quotation_status(quotation_id, new_status, actor_user_id=None):
    """Change a quotation's status and move its lot to match.

    Raises:
        NotFoundError: Quotation doesn't exist.
        ValidationError: Unknown status.
        InvalidTransitionError: The lot can't follow (e.g. a sold lot).
    """
    quotation = db.session.get(Quotation, quotation_id)
    if quotation is None:
        raise NotFoundError(f"Quotation {quotation_id} not found.")
    if new_status not in Quotation.STATUSES:
        raise ValidationError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(Quotation.STATUSES)}"
        )
    if new_status == quotation.status:
        return quotation

    old_status = quotation.status
    quotation.status = new_status
    quotation.updated_at = utcnow()
    db.session.flush()

    target = Quotation.LOT_STATUS_FOR[new_status]
    if quotation.lot.status != target:
        lot_service.apply_status(quotation.lot_id, target, actor_user_id)

    log_audit(
        "quotation", quotation.id, "quotation.status_changed", actor_user_id,
        metadata={"old_status": old_status, "new_status": new_status},
    )
    return quotation
