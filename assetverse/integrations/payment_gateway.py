"""
Payment Gateway — the only module that talks HTTP to the payment provider.

Provider: Stripe Checkout, via its REST API (form-encoded requests,
Bearer secret-key auth).  Direct ``requests`` calls in services or
blueprints are not allowed; they go through this class.

  - Timeout: 20 s per call
  - Retry: transport errors only (connection reset, timeout), max 2 retries
    with backoff 1 s → 3 s.  HTTP error responses are never retried.
  - 404 / invalid session id → PaymentSessionInvalid
  - anything else that prevents an answer → InfrastructureError

Testability: pass a mock ``session`` to PaymentGateway() (or set
``payment_gateway._session``) instead of letting it create a real
requests.Session.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from flask import current_app

from assetverse.core.exceptions import InfrastructureError, ValidationError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 20
_RETRY_MAX = 2
_RETRY_BACKOFF_SECONDS = [1, 3]


class PaymentSessionInvalid(ValidationError):
    """The provider does not know the checkout session id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Checkout session {session_id!r} could not be resolved",
            details={"session_id": "unknown or expired"},
            code="SESSION_INVALID",
        )


class CheckoutOutcome:
    """What the provider reports for one checkout session.

    Attributes:
        session_id:         Provider checkout session id.
        payment_status:     "paid" | "unpaid" | "no_payment_required".
        customer_email:     Email the checkout was opened for.
        amount_total:       Charged amount in the smallest currency unit.
        payment_intent_id:  Provider transaction id (unique per payment).
        metadata:           {"packageId": ..., "employeeLimit": ...}
    """

    def __init__(
        self,
        session_id: str,
        payment_status: str,
        customer_email: str | None,
        amount_total: int | None,
        payment_intent_id: str | None,
        metadata: dict | None,
    ) -> None:
        self.session_id = session_id
        self.payment_status = payment_status
        self.customer_email = customer_email
        self.amount_total = amount_total
        self.payment_intent_id = payment_intent_id
        self.metadata = metadata or {}

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @classmethod
    def from_stripe(cls, body: dict) -> "CheckoutOutcome":
        details = body.get("customer_details") or {}
        intent = body.get("payment_intent")
        if isinstance(intent, dict):
            intent = intent.get("id")
        return cls(
            session_id=body.get("id"),
            payment_status=body.get("payment_status") or "unpaid",
            customer_email=(body.get("customer_email") or details.get("email") or "").lower() or None,
            amount_total=body.get("amount_total"),
            payment_intent_id=intent,
            metadata=body.get("metadata"),
        )


class PaymentGateway:
    """Stripe Checkout gateway.

    Usage:
        from assetverse.integrations.payment_gateway import payment_gateway
        url = payment_gateway.create_checkout_session(...)
        outcome = payment_gateway.retrieve_session(session_id)
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    # ── Config ────────────────────────────────────────────────────────────────

    @staticmethod
    def _api_base() -> str:
        return current_app.config["STRIPE_API_BASE"].rstrip("/")

    @staticmethod
    def _headers() -> dict:
        secret = current_app.config.get("STRIPE_SECRET_KEY")
        if not secret:
            raise InfrastructureError("STRIPE_SECRET_KEY is not configured")
        return {"Authorization": f"Bearer {secret}"}

    # ── Core request dispatcher ───────────────────────────────────────────────

    def _send(self, method: str, path: str, *, data: dict | None = None) -> requests.Response:
        """Send one call, retrying transport failures only."""
        url = f"{self._api_base()}{path}"
        headers = self._headers()
        last_exc: Exception | None = None

        for attempt in range(_RETRY_MAX + 1):
            try:
                t0 = time.perf_counter()
                resp = self.session.request(method, url, headers=headers, data=data, timeout=_DEFAULT_TIMEOUT)
                logger.debug("Payment provider %s %s → %s (%.0fms)",
                             method, path, resp.status_code, (time.perf_counter() - t0) * 1000)
                return resp
            except (requests.ConnectionError, requests.Timeout) as exc:
                last_exc = exc
                logger.warning("Payment provider %s %s failed (attempt %d/%d): %s",
                               method, path, attempt + 1, _RETRY_MAX + 1, exc)
                if attempt < _RETRY_MAX:
                    time.sleep(_RETRY_BACKOFF_SECONDS[attempt])

        raise InfrastructureError("Payment provider unreachable") from last_exc

    @staticmethod
    def _json_or_raise(resp: requests.Response, what: str) -> dict:
        try:
            body = resp.json()
        except ValueError as exc:
            raise InfrastructureError(f"{what}: provider returned a non-JSON body") from exc
        if resp.status_code >= 400:
            message = (body.get("error") or {}).get("message") if isinstance(body, dict) else None
            logger.error("%s failed: HTTP %s %s", what, resp.status_code, message)
            raise InfrastructureError(f"{what} failed")
        return body

    # ── Public API ────────────────────────────────────────────────────────────

    def create_checkout_session(
        self,
        *,
        name: str,
        unit_amount: int,
        customer_email: str,
        metadata: dict[str, Any],
        success_url: str,
        cancel_url: str,
        quantity: int = 1,
    ) -> dict:
        """Open a hosted checkout for a single line item.  Returns {"id", "url"}."""
        form = {
            "mode": "payment",
            "customer_email": customer_email,
            "success_url": success_url,
            "cancel_url": cancel_url,
            "line_items[0][quantity]": quantity,
            "line_items[0][price_data][currency]": current_app.config.get("PAYMENT_CURRENCY", "usd"),
            "line_items[0][price_data][unit_amount]": unit_amount,
            "line_items[0][price_data][product_data][name]": name,
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = value

        body = self._json_or_raise(self._send("POST", "/checkout/sessions", data=form),
                                   "Create checkout session")
        logger.info("Checkout session %s opened for %s", body.get("id"), customer_email)
        return {"id": body.get("id"), "url": body.get("url")}

    def retrieve_session(self, session_id: str) -> CheckoutOutcome:
        """Fetch the payment outcome of a checkout session."""
        if not session_id or "/" in session_id:
            raise PaymentSessionInvalid(session_id or "")
        resp = self._send("GET", f"/checkout/sessions/{session_id}")
        if resp.status_code in (400, 404):
            raise PaymentSessionInvalid(session_id)
        return CheckoutOutcome.from_stripe(self._json_or_raise(resp, "Retrieve checkout session"))


# Module-level singleton
payment_gateway = PaymentGateway()
