"""
Affiliation model — employee E belongs to the company of HR H.

Created on the first direct assignment or approval linking the pair and
never duplicated afterwards (unique on employee_email + hr_email).
"""

from assetverse.models import db, iso, utcnow

STATUS_ACTIVE = "active"


class Affiliation(db.Model):
    __tablename__ = "affiliations"

    id = db.Column(db.Integer, primary_key=True)
    employee_email = db.Column(db.String(255), nullable=False, index=True)
    employee_name = db.Column(db.String(200))
    hr_email = db.Column(db.String(255), nullable=False, index=True)
    company_name = db.Column(db.String(200), index=True)
    company_logo = db.Column(db.String(500))
    status = db.Column(db.String(20), nullable=False, default=STATUS_ACTIVE)
    affiliation_date = db.Column(db.DateTime(timezone=True), default=utcnow)

    __table_args__ = (
        db.UniqueConstraint("employee_email", "hr_email", name="uq_affiliations_employee_hr"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "employee_email": self.employee_email,
            "employee_name": self.employee_name,
            "hr_email": self.hr_email,
            "company_name": self.company_name,
            "company_logo": self.company_logo,
            "status": self.status,
            "affiliation_date": iso(self.affiliation_date),
        }
