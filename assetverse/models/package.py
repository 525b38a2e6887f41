"""
Package catalog and payment records.

Package  — read-only catalog entry: a purchasable grant of employee seats.
Payment  — one completed checkout. ``transaction_id`` (the provider's
           payment intent id) is unique, which is what limits a checkout
           to a single seat credit no matter how often it is replayed.
"""

from decimal import Decimal

from assetverse.models import db, iso, utcnow

PAYMENT_STATUS_PAID = "paid"


class Package(db.Model):
    __tablename__ = "packages"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    employee_limit = db.Column(db.Integer, nullable=False)
    features = db.Column(db.JSON, default=list)

    @property
    def unit_amount_cents(self):
        return int((Decimal(self.price) * 100).to_integral_value())

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "price": float(self.price),
            "employee_limit": self.employee_limit,
            "features": self.features or [],
        }


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    hr_email = db.Column(db.String(255), nullable=False, index=True)
    package_id = db.Column(db.Integer, db.ForeignKey("packages.id", ondelete="SET NULL"))
    package_name = db.Column(db.String(100))
    transaction_id = db.Column(db.String(255), unique=True, nullable=False)
    session_id = db.Column(db.String(255), index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    employee_limit = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PAYMENT_STATUS_PAID)
    payment_date = db.Column(db.DateTime(timezone=True), default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "hr_email": self.hr_email,
            "package_id": self.package_id,
            "package_name": self.package_name,
            "transaction_id": self.transaction_id,
            "amount": float(self.amount),
            "employee_limit": self.employee_limit,
            "status": self.status,
            "payment_date": iso(self.payment_date),
        }
