"""
Payments Blueprint — seat packages and checkout.

Endpoints:
    GET   /packages                   package catalog (public)
    POST  /create-checkout-session    HR opens a checkout   Body: { package_id }
    POST  /payment-success            HR confirms a checkout Body: { session_id }
    GET   /payments/<email>           HR's payment history

Checkout and confirmation are rate limited per remote address (see
assetverse.middleware.rate_limiter).
"""

import logging

from flask import Blueprint, g, jsonify, request

from assetverse.core.exceptions import AuthorizationError, ValidationError
from assetverse.middleware.auth_guard import require_role
from assetverse.models.account import ROLE_HR
from assetverse.services import package_service

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__)


@payments_bp.route("/packages", methods=["GET"])
def list_packages():
    return jsonify(package_service.list_packages()), 200


@payments_bp.route("/create-checkout-session", methods=["POST"])
@require_role(ROLE_HR)
def create_checkout_session():
    data = request.get_json(silent=True) or {}
    if data.get("package_id") in (None, ""):
        raise ValidationError("Field 'package_id' is required.", details={"package_id": "required"})
    session = package_service.create_checkout(g.current_account, data["package_id"])
    return jsonify({"url": session["url"]}), 200


@payments_bp.route("/payment-success", methods=["POST"])
@require_role(ROLE_HR)
def payment_success():
    """Reconcile a completed checkout.  Replays return the original receipt."""
    data = request.get_json(silent=True) or {}
    session_id = (data.get("session_id") or request.args.get("session_id") or "").strip()
    if not session_id:
        raise ValidationError("Field 'session_id' is required.", details={"session_id": "required"})
    receipt = package_service.reconcile_payment(session_id)
    status = 201 if receipt["status"] == package_service.RECEIPT_CREDITED else 200
    return jsonify(receipt), status


@payments_bp.route("/payments/<string:email>", methods=["GET"])
@require_role(ROLE_HR)
def list_payments(email):
    if email.lower() != g.token_email:
        raise AuthorizationError("You can only view your own payments")
    return jsonify(package_service.list_payments(email)), 200
