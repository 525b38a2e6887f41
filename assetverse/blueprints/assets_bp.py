"""
Assets Blueprint — HR asset inventory and employees' held assets.

Endpoints:
    GET    /assets                    all assets (?search=, ?type=)
    POST   /assets                    HR registers an asset
    GET    /assets/<id>               one asset
    PATCH  /assets/<id>               HR edits own asset
    DELETE /assets/<id>               HR deletes own asset
    GET    /company-assets/<email>    assets owned by one HR
    GET    /my-assets/<email>         assignments of one employee
"""

import logging

from flask import Blueprint, g, jsonify, request

from assetverse.middleware.auth_guard import require_auth, require_role
from assetverse.models.account import ROLE_HR
from assetverse.services import asset_service

logger = logging.getLogger(__name__)

assets_bp = Blueprint("assets", __name__)


@assets_bp.route("/assets", methods=["GET"])
@require_auth
def list_assets():
    assets = asset_service.list_assets(
        search=request.args.get("search") or None,
        product_type=request.args.get("type") or None,
    )
    return jsonify(assets), 200


@assets_bp.route("/assets", methods=["POST"])
@require_role(ROLE_HR)
def create_asset():
    """Body: { product_name, product_type: Returnable|Non-returnable, product_image?, product_quantity }"""
    data = request.get_json(silent=True) or {}
    return jsonify(asset_service.create_asset(g.current_account, data)), 201


@assets_bp.route("/assets/<int:asset_id>", methods=["GET"])
@require_auth
def get_asset(asset_id):
    return jsonify(asset_service.get_asset(asset_id).to_dict()), 200


@assets_bp.route("/assets/<int:asset_id>", methods=["PATCH"])
@require_role(ROLE_HR)
def update_asset(asset_id):
    data = request.get_json(silent=True) or {}
    return jsonify(asset_service.update_asset(g.token_email, asset_id, data)), 200


@assets_bp.route("/assets/<int:asset_id>", methods=["DELETE"])
@require_role(ROLE_HR)
def delete_asset(asset_id):
    asset_service.delete_asset(g.token_email, asset_id)
    return jsonify({"deleted": True, "id": asset_id}), 200


@assets_bp.route("/company-assets/<string:email>", methods=["GET"])
@require_auth
def company_assets(email):
    return jsonify(asset_service.list_company_assets(email)), 200


@assets_bp.route("/my-assets/<string:email>", methods=["GET"])
@require_auth
def my_assets(email):
    return jsonify(asset_service.list_employee_assignments(email)), 200
