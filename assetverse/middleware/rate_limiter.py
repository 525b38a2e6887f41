"""
Rate limiting configuration.

The Limiter instance is created in assetverse/__init__.py with no default
limits; this module applies limits per blueprint.

Usage:
    from assetverse.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

PAYMENT_LIMIT = "20/minute"
WRITE_LIMIT = "120/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Payments:          20/minute  (each call reaches the payment provider)
        - Workflow + assets: 120/minute
        - Health check:      exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("payments")
    if bp:
        limiter.limit(PAYMENT_LIMIT)(bp)

    for bp_name in ("asset_requests", "assets", "users"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: payments: %s, api: %s", PAYMENT_LIMIT, WRITE_LIMIT)
