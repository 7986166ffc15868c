"""Inventory containers.

- Project: a development (one currency, default financing terms).
- Block: a group of lots inside a project.
"""

import uuid

from landsales.extensions import db


class Project(db.Model):
    __tablename__ = "projects"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(255), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="PEN")
    default_down_payment = db.Column(db.Numeric(5, 2), nullable=True)  # percentage
    default_financing_months = db.Column(db.Integer, nullable=True)
    max_discount_percentage = db.Column(db.Numeric(5, 2), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    blocks = db.relationship(
        "Block", back_populates="project", lazy="dynamic"
    )

    def __repr__(self):
        return f"<Project {self.name}>"


class Block(db.Model):
    __tablename__ = "blocks"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(50), nullable=False)  # e.g. "A", "B", "1"
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id"), nullable=False
    )
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    project = db.relationship("Project", back_populates="blocks")
    lots = db.relationship("Lot", back_populates="block", lazy="dynamic")

    def __repr__(self):
        return f"<Block {self.name}>"
