"""Client model.

A buyer (person or company). Phone number is the only required field and
is unique: landing captures look clients up by phone before creating one.
"""

import uuid

from landsales.extensions import db


class Client(db.Model):
    __tablename__ = "clients"

    TYPES = ["natural", "juridical"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    name = db.Column(db.String(255), nullable=True)
    company_name = db.Column(db.String(255), nullable=True)
    dni = db.Column(db.String(8), unique=True, nullable=True)
    ruc = db.Column(db.String(11), unique=True, nullable=True)
    phone_number = db.Column(db.String(50), unique=True, nullable=False)
    email = db.Column(db.String(255), nullable=True)
    client_type = db.Column(db.String(20), nullable=True)  # natural | juridical
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
    leads = db.relationship("Lead", back_populates="client", lazy="dynamic")
    reservations = db.relationship(
        "Reservation", back_populates="client", lazy="dynamic"
    )

    @property
    def display_name(self):
        if self.client_type == "juridical":
            return self.company_name or self.name
        return self.name or self.company_name

    def __repr__(self):
        return f"<Client {self.display_name} ({self.phone_number})>"
