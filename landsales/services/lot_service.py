"""Lot service — inventory state machine and inventory setup.

Status transitions are enforced via Lot.VALID_TRANSITIONS. A lot that is
reserved or sold can't be deleted or deactivated. Lot numbers are unique
within a block, ignoring case.

Functions flush but do NOT commit — the caller commits.
"""

import logging

from sqlalchemy import func

from landsales.errors import InvalidTransitionError, NotFoundError, ValidationError
from landsales.extensions import db
from landsales.models.lot import Lot
from landsales.models.project import Block, Project
from landsales.services.audit_service import log_audit
from landsales.utils import sanitize, to_money, utcnow

logger = logging.getLogger(__name__)


def can_transition(current, new):
    """Pure lookup against Lot.VALID_TRANSITIONS."""
    return new in Lot.VALID_TRANSITIONS.get(current, [])


def _get_lot(lot_id):
    lot = db.session.get(Lot, lot_id)
    if lot is None:
        raise NotFoundError(f"Lot {lot_id} not found.")
    return lot


def apply_status(lot_id, new_status, actor_user_id=None):
    """Move a lot to `new_status` if the transition table allows it.

    Raises:
        NotFoundError: Lot doesn't exist.
        InvalidTransitionError: Status unknown or not reachable from the
            current one.
    """
    lot = _get_lot(lot_id)

    if new_status not in Lot.STATUSES or not can_transition(lot.status, new_status):
        raise InvalidTransitionError(
            "lot", lot.status, new_status, Lot.VALID_TRANSITIONS.get(lot.status)
        )

    old_status = lot.status
    lot.status = new_status
    lot.updated_at = utcnow()
    db.session.flush()

    log_audit(
        "lot", lot.id, "lot.status_changed", actor_user_id,
        metadata={"old_status": old_status, "new_status": new_status},
    )
    logger.info(f"Lot {lot.lot_number} {old_status} -> {new_status}")
    return lot


def _check_positive(value, field):
    amount = to_money(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero.")
    return amount


def _check_unique_number(block_id, lot_number, exclude_id=None):
    query = Lot.query.filter(
        Lot.block_id == block_id,
        func.lower(Lot.lot_number) == lot_number.lower(),
    )
    if exclude_id:
        query = query.filter(Lot.id != exclude_id)
    if query.first() is not None:
        raise ValidationError(
            f"Lot number '{lot_number}' already exists in this block."
        )


def create_lot(block_id, lot_number, area, price, actor_user_id=None):
    """Add a lot to a block.

    Args:
        block_id: Block UUID string (block and its project must be active).
        lot_number: Lot number, unique per block ignoring case.
        area: Square meters, > 0.
        price: Listing price, > 0.

    Returns:
        The created Lot (status available).

    Raises:
        ValidationError: Inactive block/project, duplicate number, bad
            area or price.
    """
    block = db.session.get(Block, block_id)
    if block is None or not block.is_active:
        raise ValidationError(f"Block {block_id} does not exist or is inactive.")
    if block.project is None or not block.project.is_active:
        raise ValidationError("The block's project does not exist or is inactive.")

    lot_number = sanitize(lot_number)
    if not lot_number:
        raise ValidationError("Lot number is required.")
    _check_unique_number(block.id, lot_number)

    lot = Lot(
        block_id=block.id,
        lot_number=lot_number,
        area=_check_positive(area, "area"),
        price=_check_positive(price, "price"),
        status="available",
    )
    db.session.add(lot)
    db.session.flush()

    log_audit(
        "lot", lot.id, "lot.created", actor_user_id,
        metadata={"block_id": block.id, "lot_number": lot_number},
    )
    return lot


def update_lot(lot_id, lot_number=None, area=None, price=None, actor_user_id=None):
    """Edit a lot's number, area or price. Status is never touched here."""
    lot = _get_lot(lot_id)

    changes = {}
    if lot_number is not None:
        lot_number = sanitize(lot_number)
        if not lot_number:
            raise ValidationError("Lot number is required.")
        if lot_number != lot.lot_number:
            _check_unique_number(lot.block_id, lot_number, exclude_id=lot.id)
            changes["lot_number"] = [lot.lot_number, lot_number]
            lot.lot_number = lot_number
    if area is not None:
        area = _check_positive(area, "area")
        changes["area"] = [str(lot.area), str(area)]
        lot.area = area
    if price is not None:
        price = _check_positive(price, "price")
        changes["price"] = [str(lot.price), str(price)]
        lot.price = price

    if changes:
        lot.updated_at = utcnow()
        db.session.flush()
        log_audit("lot", lot.id, "lot.updated", actor_user_id, metadata=changes)
    return lot


def _check_unlocked(lot, verb):
    if lot.status in Lot.LOCKED_STATUSES:
        raise ValidationError(f"Cannot {verb} a lot that is {lot.status}.")


def delete_lot(lot_id, actor_user_id=None):
    lot = _get_lot(lot_id)
    _check_unlocked(lot, "delete")
    if lot.quotations.count():
        raise ValidationError("Cannot delete a lot that has quotations; deactivate it instead.")

    lot_number = lot.lot_number
    db.session.delete(lot)
    db.session.flush()
    log_audit(
        "lot", lot_id, "lot.deleted", actor_user_id,
        metadata={"lot_number": lot_number},
    )


def deactivate_lot(lot_id, actor_user_id=None):
    lot = _get_lot(lot_id)
    _check_unlocked(lot, "deactivate")
    lot.is_active = False
    lot.updated_at = utcnow()
    db.session.flush()
    log_audit("lot", lot.id, "lot.deactivated", actor_user_id)
    return lot


def activate_lot(lot_id, actor_user_id=None):
    lot = _get_lot(lot_id)
    lot.is_active = True
    lot.updated_at = utcnow()
    db.session.flush()
    log_audit("lot", lot.id, "lot.activated", actor_user_id)
    return lot


def list_available_lots(project_id=None):
    """Active, available lots in active blocks, for the quoting screen."""
    query = (
        Lot.query.join(Block)
        .filter(
            Lot.is_active.is_(True),
            Lot.status == "available",
            Block.is_active.is_(True),
        )
    )
    if project_id:
        query = query.filter(Block.project_id == project_id)
    return query.order_by(Block.name, Lot.lot_number).all()


# ─── Projects & blocks ─────────────────────────────────────


def create_project(name, location, currency="PEN", default_down_payment=None,
                   default_financing_months=None, max_discount_percentage=None):
    name = sanitize(name)
    location = sanitize(location)
    if not name or not location:
        raise ValidationError("Project name and location are required.")
    if currency not in ("PEN", "USD"):
        raise ValidationError(f"Invalid currency '{currency}'.")

    project = Project(
        name=name,
        location=location,
        currency=currency,
        default_down_payment=default_down_payment,
        default_financing_months=default_financing_months,
        max_discount_percentage=max_discount_percentage,
    )
    db.session.add(project)
    db.session.flush()
    log_audit("project", project.id, "project.created", metadata={"name": name})
    return project


def create_block(project_id, name):
    project = db.session.get(Project, project_id)
    if project is None or not project.is_active:
        raise ValidationError(f"Project {project_id} does not exist or is inactive.")
    name = sanitize(name)
    if not name:
        raise ValidationError("Block name is required.")
    if project.blocks.filter(func.lower(Block.name) == name.lower()).first():
        raise ValidationError(f"Block '{name}' already exists in this project.")

    block = Block(project_id=project.id, name=name)
    db.session.add(block)
    db.session.flush()
    log_audit("block", block.id, "block.created", metadata={"project_id": project.id})
    return block
