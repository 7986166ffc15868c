"""
Reservation receipt data and rendering.

build_reservation_receipt() collects the already-reconciled numbers of a
reservation (balance, ledger, schedule) into a plain dict. Rendering is a
separate, pluggable step: any callable taking that dict and returning bytes
works (spreadsheet export, PDF, ...). The default renders the Jinja2 HTML
template documents/reservation_receipt.html.

Usage:
    from landsales.services.document_service import render_reservation_receipt

    body = render_reservation_receipt(reservation_id)
"""

import logging

from flask import render_template

from landsales.services.code_service import client_placeholder_code
from landsales.services.installment_service import pending_installments
from landsales.services.reservation_service import get_reservation
from landsales.utils import as_utc

logger = logging.getLogger(__name__)

RECEIPT_TEMPLATE = "documents/reservation_receipt.html"


def _money(value):
    return f"{value:,.2f}"


def build_reservation_receipt(reservation):
    """Everything a receipt needs, as strings and plain types."""
    quotation = reservation.quotation
    lead = quotation.lead
    client = reservation.client
    lot = quotation.lot
    pending_ids = {p.payment.id for p in pending_installments(reservation.id)}

    return {
        "reservation_id": reservation.id,
        "status": reservation.status,
        "reservation_date": reservation.reservation_date.isoformat(),
        "expires_at": as_utc(reservation.expires_at).isoformat(),
        "currency": reservation.currency,
        "exchange_rate": str(reservation.exchange_rate),
        "contract_validation_status": reservation.contract_validation_status,
        "client": {
            "name": client.display_name,
            "document": client.dni or client.ruc,
            "phone_number": client.phone_number,
        },
        "lead_code": lead.code if lead else client_placeholder_code(client),
        "quotation_code": quotation.code,
        "lot": {
            "project": lot.project.name if lot.project else None,
            "block": lot.block.name,
            "lot_number": lot.lot_number,
            "area": str(quotation.area_at_quotation),
        },
        "amounts": {
            "total_amount_required": _money(reservation.total_amount_required),
            "amount_paid": _money(reservation.amount_paid),
            "remaining_amount": _money(reservation.remaining_amount),
            "final_price": _money(quotation.final_price),
            "amount_financed": _money(quotation.amount_financed),
        },
        "ledger": [entry.to_dict() for entry in reservation.ledger_entries],
        "schedule": [
            {
                "installment_number": p.installment_number,
                "due_date": as_utc(p.due_date).date().isoformat(),
                "amount_due": _money(p.amount_due),
                "paid": p.paid,
                "pending": p.id in pending_ids,
            }
            for p in reservation.payments
        ],
    }


def _render_html(receipt):
    return render_template(RECEIPT_TEMPLATE, receipt=receipt).encode("utf-8")


def render_reservation_receipt(reservation_id, renderer=None):
    """Render a reservation receipt to bytes.

    Args:
        reservation_id: Active Reservation UUID.
        renderer: Callable(dict) -> bytes. Defaults to the HTML template.

    Raises:
        NotFoundError: Reservation missing or inactive.
    """
    reservation = get_reservation(reservation_id)
    receipt = build_reservation_receipt(reservation)
    body = (renderer or _render_html)(receipt)
    logger.info(f"Rendered receipt for reservation {reservation.id} ({len(body)} bytes)")
    return body
