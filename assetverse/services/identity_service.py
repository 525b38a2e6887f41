"""
Identity Service — verification of identity-provider ID tokens.

Two verification modes, selected by IDENTITY_VERIFY_MODE:

    firebase  RS256 ID tokens issued by Firebase Authentication.  The signing
              key is resolved from Google's secure-token JWKS endpoint, and
              audience / issuer must match FIREBASE_PROJECT_ID.
    hs256     Shared-secret tokens for development and tests.  Tokens can be
              minted locally with issue_dev_token().

Either way the caller gets back the verified claims; the ``email`` claim is
mandatory because every account is keyed by email.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

from assetverse.core.exceptions import AuthenticationError, InfrastructureError

logger = logging.getLogger(__name__)

MODE_FIREBASE = "firebase"
MODE_HS256 = "hs256"
DEV_TOKEN_EXPIRES = 3600  # 1 hour

_FIREBASE_ISSUER = "https://securetoken.google.com/{project_id}"

# JWKS clients keep their own key cache; one per endpoint URL
_jwk_clients: dict[str, jwt.PyJWKClient] = {}
_jwk_lock = threading.Lock()


def _get_shared_secret():
    return current_app.config.get("IDENTITY_SHARED_SECRET") or current_app.config["SECRET_KEY"]


def _get_jwk_client(url: str) -> jwt.PyJWKClient:
    with _jwk_lock:
        client = _jwk_clients.get(url)
        if client is None:
            client = jwt.PyJWKClient(url, cache_keys=True)
            _jwk_clients[url] = client
        return client


def _decode_firebase(token: str) -> dict:
    project_id = current_app.config.get("FIREBASE_PROJECT_ID")
    if not project_id:
        raise InfrastructureError("FIREBASE_PROJECT_ID is not configured")

    client = _get_jwk_client(current_app.config["IDENTITY_JWKS_URL"])
    signing_key = client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        audience=project_id,
        issuer=_FIREBASE_ISSUER.format(project_id=project_id),
        options={"require": ["exp", "iat", "sub"]},
    )


def _decode_hs256(token: str) -> dict:
    return jwt.decode(
        token,
        _get_shared_secret(),
        algorithms=["HS256"],
        options={"require": ["exp"]},
    )


def verify_id_token(token: str) -> dict:
    """Verify an identity assertion and return its claims.

    Raises:
        AuthenticationError: token missing, expired, forged or without email.
        InfrastructureError: the verifier itself is unusable (signing keys
            unreachable, provider not configured).
    """
    if not token:
        raise AuthenticationError()

    mode = current_app.config.get("IDENTITY_VERIFY_MODE", MODE_FIREBASE)
    try:
        if mode == MODE_HS256:
            claims = _decode_hs256(token)
        else:
            claims = _decode_firebase(token)
    except jwt.PyJWKClientConnectionError as exc:
        logger.error("Identity signing keys unreachable: %s", exc)
        raise InfrastructureError("Identity provider unreachable") from exc
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError(code="TOKEN_EXPIRED") from exc
    except (jwt.InvalidTokenError, jwt.PyJWKClientError) as exc:
        logger.info("Rejected identity token: %s", exc)
        raise AuthenticationError() from exc

    email = (claims.get("email") or "").strip().lower()
    if not email:
        raise AuthenticationError(code="EMAIL_CLAIM_MISSING")
    claims["email"] = email
    return claims


def issue_dev_token(email: str, expires_in: int = DEV_TOKEN_EXPIRES) -> str:
    """Mint an HS256 identity token for development / tests.

    Refuses to run in firebase mode so a production deployment can never
    hand out tokens of its own.
    """
    if current_app.config.get("IDENTITY_VERIFY_MODE") != MODE_HS256:
        raise RuntimeError("issue_dev_token is only available in hs256 mode")
    now = datetime.now(timezone.utc)
    payload = {
        "sub": email,
        "email": email,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(payload, _get_shared_secret(), algorithm="HS256")
