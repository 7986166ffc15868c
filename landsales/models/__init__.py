# Models package — import all models here so Alembic can discover them.

from landsales.models.user import User  # noqa: F401
from landsales.models.client import Client  # noqa: F401
from landsales.models.project import Project, Block  # noqa: F401
from landsales.models.lot import Lot  # noqa: F401
from landsales.models.lead import Lead, Referral  # noqa: F401
from landsales.models.quotation import Quotation  # noqa: F401
from landsales.models.reservation import (  # noqa: F401
    Reservation,
    PaymentLedgerEntry,
)
from landsales.models.payment import Payment, PaymentTransaction  # noqa: F401
from landsales.models.audit import AuditEvent  # noqa: F401
