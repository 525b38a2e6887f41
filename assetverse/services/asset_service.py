"""
Asset Inventory Service — HR-owned asset records.

Ownership: only the HR whose email is recorded on the asset may edit or
delete it.  A foreign HR gets a NotFoundError rather than a 403 so asset
ids of other companies are not confirmed to exist.

Deleting an asset leaves requests and assignments that reference it in
place: assignments keep their snapshot, and approving a request for a
deleted asset fails with ASSET_NOT_FOUND.
"""

import logging

from sqlalchemy import or_, select

from assetverse.core.exceptions import NotFoundError, ValidationError
from assetverse.models import db
from assetverse.models.account import Account
from assetverse.models.asset import RETURNABLE, VALID_PRODUCT_TYPES, Asset
from assetverse.models.assignment import Assignment

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("product_name", "product_type", "product_image", "product_quantity", "available_quantity")


def _non_negative_int(data: dict, field: str) -> int:
    value = data.get(field)
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", details={field: "integer >= 0"})
    if value < 0:
        raise ValidationError(f"{field} cannot be negative", details={field: "integer >= 0"})
    return value


def _validate_product_type(value) -> str:
    if value not in VALID_PRODUCT_TYPES:
        raise ValidationError(
            f"Invalid product_type '{value}'",
            details={"product_type": " | ".join(sorted(VALID_PRODUCT_TYPES))},
        )
    return value


def get_asset(asset_id: int) -> Asset:
    asset = db.session.get(Asset, asset_id)
    if asset is None:
        raise NotFoundError("Asset", asset_id)
    return asset


def _get_owned_asset(hr_email: str, asset_id: int) -> Asset:
    asset = db.session.get(Asset, asset_id)
    if asset is None or asset.hr_email != hr_email:
        raise NotFoundError("Asset", asset_id)
    return asset


def create_asset(hr: Account, data: dict) -> dict:
    """Register a new asset for the calling HR's company."""
    product_name = (data.get("product_name") or "").strip()
    if not product_name:
        raise ValidationError("product_name is required", details={"product_name": "required"})
    quantity = _non_negative_int(data, "product_quantity")

    asset = Asset(
        hr_email=hr.email,
        company_name=hr.company_name,
        product_name=product_name,
        product_type=_validate_product_type(data.get("product_type") or RETURNABLE),
        product_image=data.get("product_image"),
        product_quantity=quantity,
        available_quantity=quantity,
    )
    db.session.add(asset)
    db.session.commit()
    logger.info("Asset created id=%s by %s", asset.id, hr.email,
                extra={"hr_email": hr.email, "asset_id": asset.id, "event_type": "asset_created"})
    return asset.to_dict()


def list_assets(search: str | None = None, product_type: str | None = None) -> list[dict]:
    stmt = select(Asset).order_by(Asset.created_at.desc(), Asset.id.desc())
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(Asset.product_name.ilike(pattern), Asset.company_name.ilike(pattern)))
    if product_type:
        stmt = stmt.where(Asset.product_type == _validate_product_type(product_type))
    return [a.to_dict() for a in db.session.execute(stmt).scalars().all()]


def list_company_assets(hr_email: str) -> list[dict]:
    assets = db.session.execute(
        select(Asset).where(Asset.hr_email == hr_email.lower()).order_by(Asset.id.asc())
    ).scalars().all()
    return [a.to_dict() for a in assets]


def update_asset(hr_email: str, asset_id: int, data: dict) -> dict:
    """Edit whitelisted asset fields.  Quantities must stay >= 0."""
    asset = _get_owned_asset(hr_email, asset_id)

    unknown = sorted(set(data) - set(_EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(
            f"Fields not editable: {', '.join(unknown)}",
            details={f: "not editable" for f in unknown},
        )

    if "product_name" in data:
        name = (data["product_name"] or "").strip()
        if not name:
            raise ValidationError("product_name cannot be empty", details={"product_name": "required"})
        asset.product_name = name
    if "product_type" in data:
        asset.product_type = _validate_product_type(data["product_type"])
    if "product_image" in data:
        asset.product_image = data["product_image"]
    if "product_quantity" in data:
        asset.product_quantity = _non_negative_int(data, "product_quantity")
    if "available_quantity" in data:
        asset.available_quantity = _non_negative_int(data, "available_quantity")

    db.session.commit()
    return asset.to_dict()


def delete_asset(hr_email: str, asset_id: int) -> None:
    asset = _get_owned_asset(hr_email, asset_id)
    db.session.delete(asset)
    db.session.commit()
    logger.info("Asset deleted id=%s by %s", asset_id, hr_email,
                extra={"hr_email": hr_email, "asset_id": asset_id, "event_type": "asset_deleted"})


def list_employee_assignments(employee_email: str) -> list[dict]:
    """Every assignment record (held and returned) for one employee."""
    rows = db.session.execute(
        select(Assignment)
        .where(Assignment.employee_email == employee_email.lower())
        .order_by(Assignment.assignment_date.desc(), Assignment.id.desc())
    ).scalars().all()
    return [r.to_dict() for r in rows]
