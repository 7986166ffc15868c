"""Lead service — capture, status changes, recycle, expiration sweep.

Lead lifecycle:
    registered -> attended -> in_follow_up -> completed | canceled
    any open status -> expired       (sweep, once expiration_date passes)
    expired | canceled -> registered (recycle, new 7-day window)

Every lead gets a LEAD-YYYY-NNNNN code and a window of
LEAD_EXPIRATION_DAYS from its entry date. recycle_count only ever goes up.

Functions flush but do NOT commit — the caller commits.
"""

import logging
from datetime import timedelta

from flask import current_app
from sqlalchemy import select, update

from landsales.errors import NotFoundError, ValidationError
from landsales.extensions import db
from landsales.models.client import Client
from landsales.models.lead import Lead
from landsales.models.project import Project
from landsales.models.user import User
from landsales.services.audit_service import log_audit
from landsales.services.code_service import next_lead_code
from landsales.utils import as_utc, sanitize, utcnow

logger = logging.getLogger(__name__)


def _window():
    return timedelta(days=current_app.config.get("LEAD_EXPIRATION_DAYS", 7))


def _get_active_lead(lead_id):
    lead = db.session.get(Lead, lead_id)
    if lead is None or not lead.is_active:
        raise NotFoundError(f"Lead {lead_id} not found.")
    return lead


def _check_advisor(advisor_id):
    if advisor_id is None:
        return
    advisor = db.session.get(User, advisor_id)
    if advisor is None or not advisor.is_active:
        raise ValidationError(f"Advisor {advisor_id} does not exist or is inactive.")


def _check_project(project_id):
    if project_id is None:
        return
    if db.session.get(Project, project_id) is None:
        raise ValidationError(f"Project {project_id} does not exist.")


def create_lead(client_id, capture_source, advisor_id=None, project_id=None, now=None):
    """Register a new lead for an existing client.

    Args:
        client_id: Client UUID string (must exist and be active).
        capture_source: One of Lead.CAPTURE_SOURCES.
        advisor_id: Optional User UUID to assign the lead to.
        project_id: Optional Project UUID the prospect asked about.
        now: Clock override.

    Returns:
        The created Lead.

    Raises:
        ValidationError: Missing/inactive client, unknown advisor or project,
            invalid capture source.
    """
    if not client_id:
        raise ValidationError("A client is required to create a lead.")
    client = db.session.get(Client, client_id)
    if client is None or not client.is_active:
        raise ValidationError(f"Client {client_id} does not exist or is inactive.")

    if capture_source not in Lead.CAPTURE_SOURCES:
        raise ValidationError(
            f"Invalid capture source '{capture_source}'. "
            f"Must be one of: {', '.join(Lead.CAPTURE_SOURCES)}"
        )
    _check_advisor(advisor_id)
    _check_project(project_id)

    now = now or utcnow()
    lead = Lead(
        code=next_lead_code(now=now),
        client_id=client.id,
        assigned_to_user_id=advisor_id,
        project_id=project_id,
        capture_source=capture_source,
        status="registered",
        entry_date=now,
        expiration_date=now + _window(),
        recycle_count=0,
    )
    db.session.add(lead)
    db.session.flush()

    log_audit(
        "lead", lead.id, "lead.created",
        metadata={"code": lead.code, "client_id": client.id, "capture_source": capture_source},
    )
    logger.info(f"Lead {lead.code} created for client {client.id}")
    return lead


def update_lead(lead_id, advisor_id=None, project_id=None, capture_source=None,
                actor_user_id=None):
    """Reassign a lead or correct its project / capture source."""
    lead = _get_active_lead(lead_id)

    changes = {}
    if advisor_id is not None and advisor_id != lead.assigned_to_user_id:
        _check_advisor(advisor_id)
        changes["assigned_to_user_id"] = [lead.assigned_to_user_id, advisor_id]
        lead.assigned_to_user_id = advisor_id
    if project_id is not None and project_id != lead.project_id:
        _check_project(project_id)
        changes["project_id"] = [lead.project_id, project_id]
        lead.project_id = project_id
    if capture_source is not None and capture_source != lead.capture_source:
        if capture_source not in Lead.CAPTURE_SOURCES:
            raise ValidationError(f"Invalid capture source '{capture_source}'.")
        changes["capture_source"] = [lead.capture_source, capture_source]
        lead.capture_source = capture_source

    if changes:
        lead.updated_at = utcnow()
        db.session.flush()
        log_audit("lead", lead.id, "lead.updated", actor_user_id, metadata=changes)
    return lead


def change_status(lead_id, new_status, completion_reason=None,
                  cancellation_reason=None, actor_user_id=None):
    """Apply a new status to a lead.

    completed and canceled require a completion_reason; every other status
    clears it. A cancellation_reason is kept only when canceling.

    Raises:
        NotFoundError: Lead missing or inactive.
        ValidationError: Unknown status or missing/invalid completion reason.
    """
    lead = _get_active_lead(lead_id)

    if new_status not in Lead.STATUSES:
        raise ValidationError(
            f"Invalid status '{new_status}'. Must be one of: {', '.join(Lead.STATUSES)}"
        )

    if new_status in Lead.FINISHED_STATUSES:
        if not completion_reason:
            raise ValidationError(
                f"A completion reason is required to mark a lead as {new_status}."
            )
        if completion_reason not in Lead.COMPLETION_REASONS:
            raise ValidationError(
                f"Invalid completion reason '{completion_reason}'. "
                f"Must be one of: {', '.join(Lead.COMPLETION_REASONS)}"
            )
        lead.completion_reason = completion_reason
    else:
        lead.completion_reason = None

    if new_status == "canceled":
        reason = sanitize(cancellation_reason)
        if reason:
            lead.cancellation_reason = reason

    old_status = lead.status
    lead.status = new_status
    lead.updated_at = utcnow()
    db.session.flush()

    log_audit(
        "lead", lead.id, "lead.status_changed", actor_user_id,
        metadata={
            "old_status": old_status,
            "new_status": new_status,
            "completion_reason": lead.completion_reason,
        },
    )
    return lead


def recycle(lead_id, actor_user_id, now=None):
    """Give an expired or canceled lead a fresh window.

    Resets entry/expiration dates, sets status back to registered, bumps
    recycle_count and records who recycled it.

    Raises:
        NotFoundError: Lead missing, inactive, or not expired/canceled.
    """
    lead = db.session.get(Lead, lead_id)
    if (
        lead is None
        or not lead.is_active
        or lead.status not in Lead.RECYCLABLE_STATUSES
    ):
        raise NotFoundError(
            f"Lead {lead_id} not found or not eligible for recycling."
        )

    now = now or utcnow()
    old_status = lead.status
    lead.status = "registered"
    lead.completion_reason = None
    lead.entry_date = now
    lead.expiration_date = now + _window()
    lead.recycle_count = (lead.recycle_count or 0) + 1
    lead.last_recycled_at = now
    lead.last_recycled_by_user_id = actor_user_id
    lead.updated_at = now
    db.session.flush()

    log_audit(
        "lead", lead.id, "lead.recycled", actor_user_id,
        metadata={"old_status": old_status, "recycle_count": lead.recycle_count},
    )
    logger.info(f"Lead {lead.code} recycled (count={lead.recycle_count})")
    return lead


def _expirable_filter(now):
    return (
        Lead.is_active.is_(True),
        Lead.expiration_date < now,
        Lead.status.notin_(Lead.CLOSED_STATUSES),
    )


def count_expirable(now=None):
    """How many leads the next sweep would expire."""
    now = now or utcnow()
    return Lead.query.filter(*_expirable_filter(now)).count()


def sweep_expirations(now=None, batch_size=None):
    """Mark every overdue open lead as expired.

    Works in batches of LEAD_SWEEP_BATCH_SIZE. Each UPDATE repeats the
    eligibility predicate, so a lead already expired (by this sweep, a
    concurrent one, or a status change) is never counted twice and a
    second run right after the first affects 0 rows.

    Returns:
        int: Number of leads transitioned to expired.
    """
    now = now or utcnow()
    batch_size = batch_size or current_app.config.get("LEAD_SWEEP_BATCH_SIZE", 100)
    criteria = _expirable_filter(now)

    # The bulk UPDATE bypasses the identity map; push pending changes first.
    db.session.flush()

    total = 0
    while True:
        ids = list(
            db.session.scalars(
                select(Lead.id).where(*criteria).order_by(Lead.expiration_date).limit(batch_size)
            )
        )
        if not ids:
            break

        result = db.session.execute(
            update(Lead)
            .where(Lead.id.in_(ids), *criteria)
            .values(status="expired", completion_reason=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Every candidate was taken by someone else between select and update.
            break
        total += result.rowcount

    # Objects already loaded in this session still show the old status.
    db.session.expire_all()

    if total:
        log_audit("lead", None, "lead.sweep_expired", metadata={"count": total})
        logger.info(f"Expiration sweep: {total} lead(s) expired")
    else:
        logger.info("Expiration sweep: no leads to expire")
    return total


def deactivate(lead_id, actor_user_id=None):
    """Soft-delete a lead."""
    lead = _get_active_lead(lead_id)
    lead.is_active = False
    lead.updated_at = utcnow()
    db.session.flush()
    log_audit("lead", lead.id, "lead.deactivated", actor_user_id)
    return lead


def reactivate(lead_id, actor_user_id=None, now=None):
    """Undo a soft delete. Status is re-derived from the expiration date."""
    lead = db.session.get(Lead, lead_id)
    if lead is None or lead.is_active:
        raise NotFoundError(f"Inactive lead {lead_id} not found.")

    now = now or utcnow()
    lead.is_active = True
    lead.status = "expired" if as_utc(lead.expiration_date) < now else "registered"
    lead.completion_reason = None
    lead.updated_at = now
    db.session.flush()
    log_audit(
        "lead", lead.id, "lead.reactivated", actor_user_id,
        metadata={"status": lead.status},
    )
    return lead


# ─── Read models ───────────────────────────────────────────


def get_lead(lead_id, scope=None):
    """Load one active lead visible to `scope`, or raise NotFoundError."""
    query = Lead.query.filter(Lead.id == lead_id, Lead.is_active.is_(True))
    if scope is not None:
        query = scope.apply(query, Lead.assigned_to_user_id)
    lead = query.first()
    if lead is None:
        raise NotFoundError(f"Lead {lead_id} not found.")
    return lead


def list_leads(scope=None, status=None):
    """Active leads visible to `scope`, newest first. Empty list if none."""
    query = Lead.query.filter(Lead.is_active.is_(True))
    if status:
        query = query.filter(Lead.status == status)
    if scope is not None:
        query = scope.apply(query, Lead.assigned_to_user_id)
    return query.order_by(Lead.entry_date.desc()).all()


def list_expired_leads(scope=None):
    return list_leads(scope, status="expired")


def list_recyclable_leads(scope=None):
    """Expired and canceled leads — the pool advisors can recycle from."""
    query = Lead.query.filter(
        Lead.is_active.is_(True),
        Lead.status.in_(Lead.RECYCLABLE_STATUSES),
    )
    if scope is not None:
        query = scope.apply(query, Lead.assigned_to_user_id)
    return query.order_by(Lead.expiration_date.asc()).all()


def list_inactive_leads():
    return (
        Lead.query.filter(Lead.is_active.is_(False))
        .order_by(Lead.updated_at.desc())
        .all()
    )
