"""
Asset inventory model.

Assets are owned by one HR account (``hr_email``). ``product_quantity`` is
the total registered; ``available_quantity`` is what is left to hand out
and is decremented by approvals / direct assignments and restored by
returns. It can never go below zero (check constraint + conditional
UPDATE in the workflow engine).
"""

from assetverse.models import db, iso, utcnow

RETURNABLE = "Returnable"
NON_RETURNABLE = "Non-returnable"
VALID_PRODUCT_TYPES = frozenset({RETURNABLE, NON_RETURNABLE})


class Asset(db.Model):
    __tablename__ = "assets"

    id = db.Column(db.Integer, primary_key=True)
    hr_email = db.Column(db.String(255), nullable=False, index=True)
    company_name = db.Column(db.String(200))
    product_name = db.Column(db.String(200), nullable=False)
    product_type = db.Column(db.String(20), nullable=False, default=RETURNABLE)
    product_image = db.Column(db.String(500))
    product_quantity = db.Column(db.Integer, nullable=False, default=0)
    available_quantity = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint("available_quantity >= 0", name="ck_assets_available_quantity_non_negative"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "hr_email": self.hr_email,
            "company_name": self.company_name,
            "product_name": self.product_name,
            "product_type": self.product_type,
            "product_image": self.product_image,
            "product_quantity": self.product_quantity,
            "available_quantity": self.available_quantity,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
