from __future__ import annotations

from sqlalchemy.orm import declared_attr

from ..extensions import db
from tradebook.time_utils import to_utc_z


class CounterpartyMixin:
    """
    Shared columns for customers and suppliers.

    current_balance_cents is the amount owed (receivable for customers,
    payable for suppliers). It is moved only by order creation and payment
    recording, never by the generic update path.
    """
    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(200), nullable=False)
    contact_person = db.Column(db.String(100), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    address = db.Column(db.String(500), nullable=True)
    city = db.Column(db.String(100), nullable=True)
    country = db.Column(db.String(100), nullable=True)
    tax_id = db.Column(db.String(50), nullable=True)
    payment_terms = db.Column(db.String(100), nullable=True, default="Net 30")

    credit_limit_cents = db.Column(db.Integer, nullable=False, default=0)
    current_balance_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_by = db.Column(db.Integer, nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @declared_attr
    def __mapper_args__(cls):
        return {"version_id_col": cls.__table__.c.version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "city": self.city,
            "country": self.country,
            "tax_id": self.tax_id,
            "payment_terms": self.payment_terms,
            "credit_limit_cents": self.credit_limit_cents,
            "current_balance_cents": self.current_balance_cents,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Customer(CounterpartyMixin, db.Model):
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_phone", "phone"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return f"<Customer id={self.id} name={self.name!r} balance={self.current_balance_cents}>"


class Supplier(CounterpartyMixin, db.Model):
    __tablename__ = "suppliers"
    __table_args__ = {"sqlite_autoincrement": True}

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r} balance={self.current_balance_cents}>"
