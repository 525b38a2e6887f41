"""
Users Blueprint — account registration, profile and role lookup.

Endpoints:
    POST   /users             register the signed-in user (email from token)
    GET    /users/<email>     profile of any registered user
    GET    /user/role         role of the signed-in user ({"role": null} if unregistered)
    PATCH  /user              edit own profile

Layer contract:
    - Blueprint: parse input, call account_service, return JSON.
    - NO db.session calls here; all writes owned by the service.
"""

import logging

from flask import Blueprint, g, jsonify, request

from assetverse.middleware.auth_guard import require_auth
from assetverse.services import account_service

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__)


@users_bp.route("/users", methods=["POST"])
@require_auth
def create_user():
    """First sign-in registration.

    Body: { "role": "hr|employee", "name": "...", "profile_image"?, "date_of_birth"?,
            "company_name" (hr), "company_logo"? (hr) }
    Returns 201 with the account, 409 if already registered.
    """
    data = request.get_json(silent=True) or {}
    account = account_service.create_account(g.token_email, data)
    return jsonify(account), 201


@users_bp.route("/users/<string:email>", methods=["GET"])
@require_auth
def get_user(email):
    account = account_service.get_account(email)
    return jsonify(account.to_dict()), 200


@users_bp.route("/user/role", methods=["GET"])
@require_auth
def get_my_role():
    return jsonify({"role": account_service.get_role(g.token_email)}), 200


@users_bp.route("/user", methods=["PATCH"])
@require_auth
def update_me():
    data = request.get_json(silent=True) or {}
    return jsonify(account_service.update_profile(g.token_email, data)), 200
