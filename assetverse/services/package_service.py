"""
Package Fulfillment Service — seat packages, checkout and payment credit.

Flow:
    1. HR picks a package → create_checkout() opens a provider checkout and
       returns its hosted URL.
    2. The provider redirects back to the SPA with ?session_id=...; the SPA
       calls POST /payment-success → reconcile_payment(session_id).
    3. reconcile_payment records the Payment and credits the HR's
       package_limit by the package's employee_limit, exactly once per
       provider transaction id, however often step 2 is replayed.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app
from sqlalchemy import select

from assetverse.core.exceptions import ConflictError, NotFoundError, ValidationError
from assetverse.integrations.payment_gateway import payment_gateway
from assetverse.models import db, utcnow
from assetverse.models.account import Account
from assetverse.models.package import PAYMENT_STATUS_PAID, Package, Payment
from assetverse.services.account_service import credit_seats, hr_lock
from assetverse.services.helpers.transactions import CONCURRENT_UPDATE, transaction

logger = logging.getLogger(__name__)

RECEIPT_CREDITED = "credited"
RECEIPT_ALREADY_PROCESSED = "already_processed"
RECEIPT_UNPAID = "unpaid"

DEFAULT_PACKAGES = (
    {"name": "Basic", "price": Decimal("5.00"), "employee_limit": 5,
     "features": ["Asset Tracking", "Employee Management", "Basic Support"]},
    {"name": "Standard", "price": Decimal("8.00"), "employee_limit": 10,
     "features": ["All Basic features", "Advanced Analytics", "Priority Support"]},
    {"name": "Premium", "price": Decimal("15.00"), "employee_limit": 20,
     "features": ["All Standard features", "Custom Branding", "24/7 Support"]},
)


# ── Catalog ────────────────────────────────────────────────────────────────


def list_packages() -> list[dict]:
    rows = db.session.execute(select(Package).order_by(Package.price.asc())).scalars().all()
    return [p.to_dict() for p in rows]


def get_package(package_id) -> Package:
    try:
        package_id = int(package_id)
    except (TypeError, ValueError):
        raise NotFoundError("Package", package_id)
    package = db.session.get(Package, package_id)
    if package is None:
        raise NotFoundError("Package", package_id)
    return package


def seed_default_packages() -> int:
    """Insert the default catalog entries that are missing.  Returns count added."""
    existing = set(db.session.execute(select(Package.name)).scalars().all())
    added = 0
    for entry in DEFAULT_PACKAGES:
        if entry["name"] in existing:
            continue
        db.session.add(Package(**entry))
        added += 1
    db.session.commit()
    return added


# ── Checkout ───────────────────────────────────────────────────────────────


def create_checkout(hr: Account, package_id) -> dict:
    """Open a provider checkout for one package.  Returns {"id", "url"}."""
    package = get_package(package_id)
    client = current_app.config["CLIENT_DOMAIN"].rstrip("/")
    session = payment_gateway.create_checkout_session(
        name=package.name,
        unit_amount=package.unit_amount_cents,
        customer_email=hr.email,
        metadata={"packageId": package.id, "employeeLimit": package.employee_limit},
        success_url=f"{client}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{client}/upgrade-package",
    )
    logger.info("Checkout opened for %s package=%s", hr.email, package.name,
                extra={"hr_email": hr.email, "event_type": "checkout_opened"})
    return session


# ── Reconciliation ─────────────────────────────────────────────────────────


def _find_payment(transaction_id: str) -> Payment | None:
    return db.session.execute(
        select(Payment).where(Payment.transaction_id == transaction_id)
    ).scalar_one_or_none()


def _receipt(status: str, payment: Payment | None = None, package_limit: int | None = None,
             payment_status: str | None = None) -> dict:
    return {
        "status": status,
        "payment_status": payment_status or (payment.status if payment else None),
        "payment": payment.to_dict() if payment else None,
        "package_limit": package_limit,
    }


def reconcile_payment(session_id: str) -> dict:
    """Credit the seats bought in a checkout session, at most once.

    Returns a receipt whose ``status`` is one of:
        credited           Payment recorded and seats credited now
        already_processed  this transaction was credited earlier; nothing changed
        unpaid             provider reports no completed payment; nothing changed

    Raises:
        PaymentSessionInvalid (SESSION_INVALID): unknown session id.
        NotFoundError: the package in the session metadata no longer exists,
            or the paying HR account is unknown.
        InfrastructureError: provider or store unavailable.
    """
    outcome = payment_gateway.retrieve_session(session_id)
    transaction_id = outcome.payment_intent_id or outcome.session_id or session_id

    existing = _find_payment(transaction_id)
    if existing is not None:
        return _receipt(RECEIPT_ALREADY_PROCESSED, existing)
    if not outcome.is_paid:
        logger.info("Checkout session %s not paid (status=%s)", session_id, outcome.payment_status)
        return _receipt(RECEIPT_UNPAID, payment_status=outcome.payment_status)

    package = get_package(outcome.metadata.get("packageId"))
    hr_email = outcome.customer_email
    if not hr_email:
        raise ValidationError("Checkout session carries no customer email",
                              details={"session_id": "missing customer email"}, code="SESSION_INVALID")

    try:
        with hr_lock(hr_email), transaction("reconcile_payment"):
            if _find_payment(transaction_id) is not None:
                raise ConflictError(CONCURRENT_UPDATE, "Payment already recorded")
            payment = Payment(
                hr_email=hr_email,
                package_id=package.id,
                package_name=package.name,
                transaction_id=transaction_id,
                session_id=outcome.session_id or session_id,
                amount=Decimal(outcome.amount_total or 0) / 100,
                employee_limit=package.employee_limit,
                status=PAYMENT_STATUS_PAID,
                payment_date=utcnow(),
            )
            db.session.add(payment)
            db.session.flush()
            credit_seats(hr_email, package.employee_limit)
    except ConflictError as exc:
        if exc.code != CONCURRENT_UPDATE:
            raise
        return _receipt(RECEIPT_ALREADY_PROCESSED, _find_payment(transaction_id))

    hr = db.session.execute(select(Account).where(Account.email == hr_email)).scalar_one()
    logger.info("Payment %s credited %d seats to %s", transaction_id, package.employee_limit, hr_email,
                extra={"hr_email": hr_email, "transaction_id": transaction_id, "event_type": "seats_credited"})
    return _receipt(RECEIPT_CREDITED, payment, package_limit=hr.package_limit)


def list_payments(hr_email: str) -> list[dict]:
    rows = db.session.execute(
        select(Payment)
        .where(Payment.hr_email == hr_email.lower())
        .order_by(Payment.payment_date.desc(), Payment.id.desc())
    ).scalars().all()
    return [p.to_dict() for p in rows]
