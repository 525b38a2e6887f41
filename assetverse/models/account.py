"""
Account model — HR and employee users.

An account is created on first sign-in (the identity provider owns the
credentials; this table only stores profile + role + seat counters).

Seat counters (HR only):
    package_limit      seats left before the HR must buy another package
    current_employees  distinct employees with an active affiliation to this HR

Both counters are mutated exclusively through account_service
(try_consume_seat / credit_seats / release_seat), never by profile edits.
"""

from assetverse.models import db, iso, utcnow

ROLE_HR = "hr"
ROLE_EMPLOYEE = "employee"
VALID_ROLES = frozenset({ROLE_HR, ROLE_EMPLOYEE})


class Account(db.Model):
    __tablename__ = "accounts"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(200))
    profile_image = db.Column(db.String(500))
    date_of_birth = db.Column(db.Date)

    # HR-only company profile
    company_name = db.Column(db.String(200), index=True)
    company_logo = db.Column(db.String(500))

    package_limit = db.Column(db.Integer, nullable=False, default=0)
    current_employees = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        db.CheckConstraint("package_limit >= 0", name="ck_accounts_package_limit_non_negative"),
        db.CheckConstraint("current_employees >= 0", name="ck_accounts_current_employees_non_negative"),
    )

    @property
    def is_hr(self):
        return self.role == ROLE_HR

    def to_dict(self):
        d = {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "name": self.name,
            "profile_image": self.profile_image,
            "date_of_birth": iso(self.date_of_birth),
            "created_at": iso(self.created_at),
        }
        if self.is_hr:
            d.update({
                "company_name": self.company_name,
                "company_logo": self.company_logo,
                "package_limit": self.package_limit,
                "current_employees": self.current_employees,
            })
        return d
