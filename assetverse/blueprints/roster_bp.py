"""
Roster Blueprint — who works where.

Endpoints:
    GET /my-employees/<email>        HR's affiliated employees with asset counts
    GET /my-team/<companyName>       colleagues of a company (employees + HR)
    GET /my-companies/<email>        companies an employee is affiliated with
"""

from flask import Blueprint, g, jsonify

from assetverse.core.exceptions import AuthorizationError
from assetverse.middleware.auth_guard import require_auth, require_role
from assetverse.models.account import ROLE_HR
from assetverse.services import roster_service

roster_bp = Blueprint("roster", __name__)


@roster_bp.route("/my-employees/<string:email>", methods=["GET"])
@require_role(ROLE_HR)
def my_employees(email):
    if email.lower() != g.token_email:
        raise AuthorizationError("You can only view your own employees")
    return jsonify(roster_service.employees_of_hr(email)), 200


@roster_bp.route("/my-team/<string:company_name>", methods=["GET"])
@require_auth
def my_team(company_name):
    return jsonify(roster_service.team_of_company(company_name)), 200


@roster_bp.route("/my-companies/<string:email>", methods=["GET"])
@require_auth
def my_companies(email):
    return jsonify(roster_service.companies_of_employee(email)), 200
