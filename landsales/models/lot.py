"""Lot model — a sellable parcel inside a Block.

Inventory pipeline: available -> quoted -> reserved -> sold
"""

import uuid

from landsales.extensions import db


class Lot(db.Model):
    __tablename__ = "lots"

    # -- Valid statuses --
    STATUSES = ["available", "quoted", "reserved", "sold"]

    # -- Valid status transitions (enforced in lot_service) --
    VALID_TRANSITIONS = {
        "available": ["available", "quoted", "reserved", "sold"],
        "quoted": ["available", "reserved"],
        "reserved": ["available", "sold"],
        "sold": [],
    }

    # -- A lot in these statuses cannot be deleted or deactivated --
    LOCKED_STATUSES = ["reserved", "sold"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    block_id = db.Column(
        db.String(36), db.ForeignKey("blocks.id"), nullable=False, index=True
    )
    lot_number = db.Column(db.String(50), nullable=False)  # e.g. "12", "A-5"
    area = db.Column(db.Numeric(18, 2), nullable=False)  # square meters
    price = db.Column(db.Numeric(18, 2), nullable=False)
    status = db.Column(
        db.String(20), default="available", nullable=False, index=True
    )  # available | quoted | reserved | sold
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    # --- Relationships ---
    block = db.relationship("Block", back_populates="lots")
    quotations = db.relationship(
        "Quotation", back_populates="lot", lazy="dynamic"
    )

    @property
    def project(self):
        return self.block.project if self.block else None

    def __repr__(self):
        return f"<Lot {self.lot_number} ({self.status})>"
