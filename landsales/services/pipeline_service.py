"""Pipeline service — the committing entry points.

Engine services (lead_service, lot_service, reservation_service, ...) flush
but never commit. Everything a caller (CLI, job, host app) should touch
goes through this module: each function runs one logical operation inside
unit_of_work(), so a reservation, its lot and its audit rows are either
all committed or all rolled back.

Usage:
    from landsales.services import pipeline_service

    lead = pipeline_service.create_lead(client_id, "company", advisor_id=user.id)
"""

import logging
from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError

from landsales.errors import ConsistencyError
from landsales.extensions import db
from landsales.services import (
    capture_service,
    installment_service,
    lead_service,
    lot_service,
    quotation_service,
    reservation_service,
)

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work():
    """Commit on success; roll back and re-raise on any error."""
    try:
        yield db.session
        db.session.commit()
    except ConsistencyError as e:
        db.session.rollback()
        logger.error(f"Rolled back inconsistent operation: {e}")
        raise
    except Exception:
        db.session.rollback()
        raise


# ─── Leads ─────────────────────────────────────────────────


def create_lead(client_id, capture_source, advisor_id=None, project_id=None, now=None):
    """Create a lead, retrying when another request took the same code.

    Codes are scan-and-increment; the unique index on leads.code turns a
    race into an IntegrityError, and the next attempt re-reads the maximum.
    """
    retries = current_app.config.get("LEAD_CODE_MAX_RETRIES", 3)
    attempt = 0
    while True:
        attempt += 1
        try:
            with unit_of_work():
                return lead_service.create_lead(
                    client_id, capture_source, advisor_id=advisor_id,
                    project_id=project_id, now=now,
                )
        except IntegrityError:
            if attempt > retries:
                raise
            logger.warning(f"Lead code conflict, retrying ({attempt}/{retries})")


def update_lead(lead_id, advisor_id=None, project_id=None, capture_source=None,
                actor_user_id=None):
    with unit_of_work():
        return lead_service.update_lead(
            lead_id, advisor_id=advisor_id, project_id=project_id,
            capture_source=capture_source, actor_user_id=actor_user_id,
        )


def change_lead_status(lead_id, status, completion_reason=None,
                       cancellation_reason=None, actor_user_id=None):
    with unit_of_work():
        return lead_service.change_status(
            lead_id, status, completion_reason=completion_reason,
            cancellation_reason=cancellation_reason, actor_user_id=actor_user_id,
        )


def recycle_lead(lead_id, actor_user_id, now=None):
    with unit_of_work():
        return lead_service.recycle(lead_id, actor_user_id, now=now)


def sweep_expired_leads(now=None):
    """Expire overdue leads. Safe to run repeatedly and concurrently."""
    with unit_of_work():
        return lead_service.sweep_expirations(now=now)


def deactivate_lead(lead_id, actor_user_id=None):
    with unit_of_work():
        return lead_service.deactivate(lead_id, actor_user_id)


def reactivate_lead(lead_id, actor_user_id=None, now=None):
    with unit_of_work():
        return lead_service.reactivate(lead_id, actor_user_id, now=now)


def capture_contact(contact, project_id=None, advisor_id=None, now=None):
    with unit_of_work():
        return capture_service.capture_contact(
            contact, project_id=project_id, advisor_id=advisor_id, now=now
        )


def register_referral(referrer, referred, project_id=None, advisor_id=None, now=None):
    with unit_of_work():
        return capture_service.register_referral(
            referrer, referred, project_id=project_id, advisor_id=advisor_id, now=now
        )


# ─── Inventory ─────────────────────────────────────────────


def create_project(name, location, **kwargs):
    with unit_of_work():
        return lot_service.create_project(name, location, **kwargs)


def create_block(project_id, name):
    with unit_of_work():
        return lot_service.create_block(project_id, name)


def create_lot(block_id, lot_number, area, price, actor_user_id=None):
    with unit_of_work():
        return lot_service.create_lot(block_id, lot_number, area, price, actor_user_id)


def change_lot_status(lot_id, status, actor_user_id=None):
    with unit_of_work():
        return lot_service.apply_status(lot_id, status, actor_user_id)


def update_lot(lot_id, lot_number=None, area=None, price=None, actor_user_id=None):
    with unit_of_work():
        return lot_service.update_lot(
            lot_id, lot_number=lot_number, area=area, price=price,
            actor_user_id=actor_user_id,
        )


def delete_lot(lot_id, actor_user_id=None):
    with unit_of_work():
        lot_service.delete_lot(lot_id, actor_user_id)


def deactivate_lot(lot_id, actor_user_id=None):
    with unit_of_work():
        return lot_service.deactivate_lot(lot_id, actor_user_id)


def activate_lot(lot_id, actor_user_id=None):
    with unit_of_work():
        return lot_service.activate_lot(lot_id, actor_user_id)


# ─── Quotations ────────────────────────────────────────────


def create_quotation(lead_id, lot_id, advisor_id, months_financed, down_payment, **kwargs):
    with unit_of_work():
        return quotation_service.create_quotation(
            lead_id, lot_id, advisor_id, months_financed, down_payment, **kwargs
        )


def change_quotation_status(quotation_id, status, actor_user_id=None):
    with unit_of_work():
        return quotation_service.change_quotation_status(quotation_id, status, actor_user_id)


# ─── Reservations ──────────────────────────────────────────


def create_reservation(quotation_id, amount, currency, payment_method, **kwargs):
    with unit_of_work():
        return reservation_service.create_reservation(
            quotation_id, amount, currency, payment_method, **kwargs
        )


def change_reservation_status(reservation_id, status, payment_info=None, actor_user_id=None):
    """Status change, payment, lot cascade and schedule as one commit.

    Raises:
        ConsistencyError: The lot could not follow; nothing was committed.
    """
    with unit_of_work():
        return reservation_service.change_status(
            reservation_id, status, payment_info=payment_info, actor_user_id=actor_user_id
        )


def update_reservation(reservation_id, total_amount_required=None, expires_at=None,
                       bank_name=None, actor_user_id=None):
    with unit_of_work():
        return reservation_service.update_reservation(
            reservation_id, total_amount_required=total_amount_required,
            expires_at=expires_at, bank_name=bank_name, actor_user_id=actor_user_id,
        )


def validate_contract(reservation_id, actor_user_id=None):
    with unit_of_work():
        return reservation_service.validate_contract(reservation_id, actor_user_id)


def deactivate_reservation(reservation_id, actor_user_id=None):
    with unit_of_work():
        return reservation_service.deactivate_reservation(reservation_id, actor_user_id)


def add_payment_entry(reservation_id, amount, **kwargs):
    with unit_of_work():
        return reservation_service.add_payment_entry(reservation_id, amount, **kwargs)


def update_payment_entry(reservation_id, entry_id, actor_user_id=None, **changes):
    with unit_of_work():
        return reservation_service.update_payment_entry(
            reservation_id, entry_id, actor_user_id=actor_user_id, **changes
        )


def remove_payment_entry(reservation_id, entry_id, actor_user_id=None):
    with unit_of_work():
        return reservation_service.remove_payment_entry(reservation_id, entry_id, actor_user_id)


def record_transaction(reservation_id, payment_ids, amount, **kwargs):
    with unit_of_work():
        return installment_service.record_transaction(
            reservation_id, payment_ids, amount, **kwargs
        )


def delete_transaction(transaction_id, actor_user_id=None):
    with unit_of_work():
        installment_service.delete_transaction(transaction_id, actor_user_id)
