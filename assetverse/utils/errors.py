"""Standardised API error responses.

Usage
-----
    from assetverse.utils.errors import api_error, E

    return api_error(E.FORBIDDEN, "Only HR actions")
    return api_error(E.VALIDATION, "product_name is required")
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants used outside the workflow engine.

    Workflow-specific codes (DUPLICATE_REQUEST, LIMIT_REACHED, ...) travel on
    the exceptions in ``assetverse.core.exceptions``.
    """

    # Validation – HTTP 400 / 422
    BAD_REQUEST = "ERR_BAD_REQUEST"
    VALIDATION = "ERR_VALIDATION"

    # Auth – HTTP 401 / 403
    UNAUTHENTICATED = "UNAUTHENTICATED"
    FORBIDDEN = "FORBIDDEN"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict – HTTP 409
    CONFLICT = "ERR_CONFLICT"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.BAD_REQUEST: 400,
    E.VALIDATION: 422,
    E.UNAUTHENTICATED: 401,
    E.FORBIDDEN: 403,
    E.NOT_FOUND: 404,
    E.CONFLICT: 409,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (``E.*`` constant or a workflow code).
    message : str
        Short human-readable explanation for the UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (field errors).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status
