"""
Asset request model — an employee asking an HR for one unit of an asset.

Status lifecycle:  pending → approved | rejected   (terminal, never re-opened)

At most one request may ever exist per (asset_id, requester_email): a
second submission is refused even after the first was rejected. The
unique constraint backs the service-level DUPLICATE_REQUEST check.
"""

from assetverse.models import db, iso, utcnow

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
VALID_REQUEST_STATUSES = frozenset({STATUS_PENDING, STATUS_APPROVED, STATUS_REJECTED})


class AssetRequest(db.Model):
    __tablename__ = "asset_requests"

    id = db.Column(db.Integer, primary_key=True)
    # Plain column, not a FK: the asset may be deleted while the request lives on
    asset_id = db.Column(db.Integer, nullable=False, index=True)
    asset_name = db.Column(db.String(200))
    asset_type = db.Column(db.String(20))
    requester_email = db.Column(db.String(255), nullable=False, index=True)
    requester_name = db.Column(db.String(200))
    hr_email = db.Column(db.String(255), nullable=False, index=True)
    company_name = db.Column(db.String(200))
    note = db.Column(db.Text)
    request_status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    request_date = db.Column(db.DateTime(timezone=True), default=utcnow)
    approval_date = db.Column(db.DateTime(timezone=True))
    processed_by = db.Column(db.String(255))

    __table_args__ = (
        db.UniqueConstraint("asset_id", "requester_email", name="uq_asset_requests_asset_requester"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "asset_id": self.asset_id,
            "asset_name": self.asset_name,
            "asset_type": self.asset_type,
            "requester_email": self.requester_email,
            "requester_name": self.requester_name,
            "hr_email": self.hr_email,
            "company_name": self.company_name,
            "note": self.note,
            "request_status": self.request_status,
            "request_date": iso(self.request_date),
            "approval_date": iso(self.approval_date),
            "processed_by": self.processed_by,
        }
