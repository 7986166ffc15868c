"""Capture service — landing-page contacts and client referrals.

Clients are matched by phone number (the one required, unique field). A
document number of 8 digits is a DNI (natural person), 11 digits a RUC
(company).

Functions flush but do NOT commit — the caller commits.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from landsales.errors import ValidationError
from landsales.extensions import db
from landsales.models.client import Client
from landsales.models.lead import Referral
from landsales.services import lead_service
from landsales.services.audit_service import log_audit
from landsales.utils import sanitize

logger = logging.getLogger(__name__)


@dataclass
class ContactData:
    phone_number: str
    name: Optional[str] = None
    email: Optional[str] = None
    document_number: Optional[str] = None
    company_name: Optional[str] = None


def _clean(value):
    value = sanitize(value)
    return value or None


def find_or_create_client(contact):
    """Return the active client with this phone number, creating it if needed.

    Raises:
        ValidationError: No phone number, or the phone belongs to an
            inactive client.
    """
    phone = _clean(contact.phone_number)
    if not phone:
        raise ValidationError("A phone number is required.")

    client = Client.query.filter_by(phone_number=phone).first()
    if client is not None:
        if not client.is_active:
            raise ValidationError(f"Client with phone {phone} is inactive.")
        return client

    document = _clean(contact.document_number)
    dni = ruc = None
    client_type = "natural"
    if document:
        if not document.isdigit() or len(document) not in (8, 11):
            raise ValidationError("Document number must be an 8-digit DNI or an 11-digit RUC.")
        if len(document) == 8:
            dni = document
        else:
            ruc = document
            client_type = "juridical"

    client = Client(
        name=_clean(contact.name),
        company_name=_clean(contact.company_name),
        email=_clean(contact.email),
        phone_number=phone,
        dni=dni,
        ruc=ruc,
        client_type=client_type,
    )
    db.session.add(client)
    db.session.flush()
    log_audit("client", client.id, "client.created", metadata={"phone_number": phone})
    return client


def capture_contact(contact, project_id=None, advisor_id=None, now=None):
    """Landing capture: find-or-create the client, then open a company lead.

    Returns:
        The created Lead.
    """
    client = find_or_create_client(contact)
    lead = lead_service.create_lead(
        client.id, "company", advisor_id=advisor_id, project_id=project_id, now=now
    )
    logger.info(f"Landing contact captured as lead {lead.code}")
    return lead


def register_referral(referrer, referred, project_id=None, advisor_id=None, now=None):
    """A client refers someone: open a loyalty lead for the referred client.

    Args:
        referrer: ContactData of the referring client.
        referred: ContactData of the referred prospect.

    Returns:
        The Referral row (its .lead is the new Lead).

    Raises:
        ValidationError: Same phone on both sides, or a client lookup fails.
    """
    if _clean(referrer.phone_number) == _clean(referred.phone_number):
        raise ValidationError("A client cannot refer themselves.")

    referrer_client = find_or_create_client(referrer)
    referred_client = find_or_create_client(referred)

    lead = lead_service.create_lead(
        referred_client.id, "loyalty", advisor_id=advisor_id,
        project_id=project_id, now=now,
    )
    referral = Referral(
        referrer_client_id=referrer_client.id,
        referred_client_id=referred_client.id,
        lead_id=lead.id,
    )
    db.session.add(referral)
    db.session.flush()

    log_audit(
        "lead", lead.id, "lead.referred",
        metadata={"referrer_client_id": referrer_client.id},
    )
    return referral

