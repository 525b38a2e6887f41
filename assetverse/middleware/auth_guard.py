"""
Auth decorators — Identity Gate and Role Guard for route protection.

Usage:
    @bp.route("/user/role", methods=["GET"])
    @require_auth
    def my_role():
        email = g.token_email
        ...

    @bp.route("/assets", methods=["POST"])
    @require_role("hr")
    def create_asset():
        hr = g.current_account
        ...

require_auth:  Authorization: Bearer <id token> → g.token_email, else 401.
require_role:  require_auth + stored role must equal the given role, else
               403; a store outage is rendered as 500, never as 403.
"""

import functools
import logging

from flask import g, request

from assetverse.core.exceptions import AssetVerseError, AuthenticationError
from assetverse.services import account_service, identity_service
from assetverse.utils.errors import api_error

logger = logging.getLogger(__name__)


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _authenticate():
    """Verify the bearer token and populate g.  Raises AssetVerseError."""
    token = _bearer_token()
    if token is None:
        raise AuthenticationError()
    claims = identity_service.verify_id_token(token)
    g.token_email = claims["email"]
    g.token_claims = claims


def _render(error: AssetVerseError):
    if error.status >= 500:
        logger.error("Auth infrastructure failure on %s: %s", request.path, error)
        return api_error(error.code, "Internal Server Error", status=500)
    return api_error(error.code, error.message, status=error.status)


def require_auth(f):
    """Decorator: reject the call with 401 unless a valid identity token is sent."""

    @functools.wraps(f)
    def decorated(*args, **kwargs):
        try:
            _authenticate()
        except AssetVerseError as exc:
            return _render(exc)
        return f(*args, **kwargs)

    return decorated


def require_role(role: str):
    """Decorator: require a verified principal whose stored role equals role.

    The loaded Account is exposed as g.current_account.
    """

    def decorator(f):
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            try:
                _authenticate()
                g.current_account = account_service.authorize(g.token_email, role)
            except AssetVerseError as exc:
                return _render(exc)
            return f(*args, **kwargs)

        return decorated

    return decorator
