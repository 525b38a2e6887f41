"""
Assignment model — an asset held (or formerly held) by an employee.

The asset_* columns are a historical snapshot taken at assignment time,
not a live reference: renaming or deleting the asset later does not
rewrite what the employee was given.

Only one ``assigned`` record may exist per (asset_id, employee_email);
``returned`` records accumulate freely.
"""

from assetverse.models import db, iso, utcnow

STATUS_ASSIGNED = "assigned"
STATUS_RETURNED = "returned"

SOURCE_DIRECT = "direct"
SOURCE_REQUEST = "request"


class Assignment(db.Model):
    __tablename__ = "assignments"

    id = db.Column(db.Integer, primary_key=True)

    # Snapshot of the asset at assignment time
    asset_id = db.Column(db.Integer, nullable=False, index=True)
    asset_name = db.Column(db.String(200))
    asset_image = db.Column(db.String(500))
    asset_type = db.Column(db.String(20))

    employee_email = db.Column(db.String(255), nullable=False, index=True)
    employee_name = db.Column(db.String(200))
    hr_email = db.Column(db.String(255), nullable=False, index=True)
    company_name = db.Column(db.String(200))

    status = db.Column(db.String(20), nullable=False, default=STATUS_ASSIGNED)
    source = db.Column(db.String(20), nullable=False, default=SOURCE_DIRECT)
    request_id = db.Column(db.Integer, index=True)
    assignment_date = db.Column(db.DateTime(timezone=True), default=utcnow)
    return_date = db.Column(db.DateTime(timezone=True))

    # At most one held record per (asset, employee); returned rows are unconstrained
    __table_args__ = (
        db.Index(
            "uq_assignments_held_pair",
            "asset_id",
            "employee_email",
            unique=True,
            sqlite_where=db.text("status = 'assigned'"),
            postgresql_where=db.text("status = 'assigned'"),
        ),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "asset_name": self.asset_name,
            "asset_image": self.asset_image,
            "asset_type": self.asset_type,
            "employee_email": self.employee_email,
            "employee_name": self.employee_name,
            "hr_email": self.hr_email,
            "company_name": self.company_name,
            "status": self.status,
            "source": self.source,
            "request_id": self.request_id,
            "assignment_date": iso(self.assignment_date),
            "return_date": iso(self.return_date),
        }
