"""
Asset Requests Blueprint — the asset lifecycle endpoints.

Endpoints:
    POST   /asset-requests                    employee requests an asset
    GET    /asset-requests/<email>            HR's incoming requests (?limit=&skip=)
    PATCH  /approve-employee-requests/<id>    HR approves
    PATCH  /reject-employee-requests/<id>     HR rejects
    POST   /assigned-assets                   HR assigns directly
    PATCH  /assigned-assets/<id>/return       holder or HR returns an asset

All business rules (duplicates, seat limit, stock, affiliation
bookkeeping) live in workflow_service; this module only parses input.
"""

import logging

from flask import Blueprint, g, jsonify, request

from assetverse.core.exceptions import AuthorizationError
from assetverse.middleware.auth_guard import require_auth, require_role
from assetverse.models.account import ROLE_EMPLOYEE, ROLE_HR
from assetverse.services import workflow_service
from assetverse.utils.helpers import page_args, require_int

logger = logging.getLogger(__name__)

requests_bp = Blueprint("asset_requests", __name__)


@requests_bp.route("/asset-requests", methods=["POST"])
@require_role(ROLE_EMPLOYEE)
def submit_request():
    """Body: { asset_id, hr_email?, note? }.  Returns 201, or 409 DUPLICATE_REQUEST."""
    data = request.get_json(silent=True) or {}
    result = workflow_service.submit_asset_request(
        g.current_account,
        require_int(data, "asset_id"),
        hr_email=data.get("hr_email"),
        note=data.get("note"),
    )
    return jsonify(result), 201


@requests_bp.route("/asset-requests/<string:email>", methods=["GET"])
@require_role(ROLE_HR)
def list_requests(email):
    if email.lower() != g.token_email:
        raise AuthorizationError("You can only view your own company's requests")
    limit, skip = page_args()
    return jsonify(workflow_service.list_hr_requests(email, limit=limit, skip=skip)), 200


@requests_bp.route("/approve-employee-requests/<int:request_id>", methods=["PATCH"])
@require_role(ROLE_HR)
def approve_request(request_id):
    return jsonify(workflow_service.approve_request(request_id, g.token_email)), 200


@requests_bp.route("/reject-employee-requests/<int:request_id>", methods=["PATCH"])
@require_role(ROLE_HR)
def reject_request(request_id):
    return jsonify(workflow_service.reject_request(request_id, g.token_email)), 200


@requests_bp.route("/assigned-assets", methods=["POST"])
@require_role(ROLE_HR)
def assign_asset():
    """Body: { employee_email, asset_id }.  The calling HR pays the seat."""
    data = request.get_json(silent=True) or {}
    result = workflow_service.assign_directly(
        g.token_email,
        data.get("employee_email"),
        require_int(data, "asset_id"),
    )
    return jsonify(result), 201


@requests_bp.route("/assigned-assets/<int:assignment_id>/return", methods=["PATCH"])
@require_auth
def return_asset(assignment_id):
    return jsonify(workflow_service.return_assignment(g.token_email, assignment_id)), 200
