"""Human-readable codes.

- Sequential per-year codes (LEAD-2026-00001, COT-2026-00001), derived by
  scanning the highest existing code for the year. Two concurrent creations
  can read the same maximum; the unique index on the code column rejects the
  loser and pipeline_service retries it.
- Placeholder codes for clients that have no lead yet (CLI-1A2B3C4D),
  derived from the client id so the same client always gets the same code.
"""

from sqlalchemy import func

from landsales.extensions import db
from landsales.utils import utcnow

LEAD_PREFIX = "LEAD"
QUOTATION_PREFIX = "COT"
CLIENT_PREFIX = "CLI"
SEQUENCE_WIDTH = 5


def next_sequential_code(model, prefix, now=None):
    """Return the next `{prefix}-{year}-{NNNNN}` code for `model.code`.

    Args:
        model: A model class with a `code` column.
        prefix: Code prefix, e.g. "LEAD".
        now: Clock override; the year of `now` scopes the sequence.
    """
    year = (now or utcnow()).year
    year_prefix = f"{prefix}-{year}-"

    # Longer suffixes first: "-100000" must outrank "-99999".
    last_code = (
        db.session.query(model.code)
        .filter(model.code.startswith(year_prefix))
        .order_by(func.length(model.code).desc(), model.code.desc())
        .limit(1)
        .scalar()
    )

    sequence = 1
    if last_code:
        parts = last_code.split("-")
        if len(parts) == 3 and parts[2].isdigit():
            sequence = int(parts[2]) + 1

    return f"{year_prefix}{sequence:0{SEQUENCE_WIDTH}d}"


def next_lead_code(now=None):
    from landsales.models.lead import Lead

    return next_sequential_code(Lead, LEAD_PREFIX, now=now)


def next_quotation_code(now=None):
    from landsales.models.quotation import Quotation

    return next_sequential_code(Quotation, QUOTATION_PREFIX, now=now)


def client_placeholder_code(client):
    """Deterministic display code for a client record standing in for a lead."""
    client_id = client.id if hasattr(client, "id") else str(client)
    return f"{CLIENT_PREFIX}-{client_id.replace('-', '')[:8].upper()}"
