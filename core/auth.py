"""Authentication utilities for the moderation API.

Sessions are owned by the external identity provider. Its gateway forwards
the authenticated user id in ``X-Actor-Id`` and signs the request body with
the shared internal secret, so this service only has to verify the HMAC.
The classifier signs its calls with a secret of its own.
"""

import base64
import hashlib
import hmac
import uuid

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from core.config import settings
from core.errors import Unauthorized, ValidationError

# HTTPBasic security for operator endpoints (metrics)
_security = HTTPBasic()


def _b64u_encode(data: bytes) -> str:
    """Base64-URL encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode()


def sign_body(body: bytes, secret: str | None = None) -> str:
    """Return the signature for ``body``; the gateway secret unless ``secret`` is given."""
    key = secret or settings.internal_auth_secret
    mac = hmac.new(key.encode(), body, hashlib.sha256).digest()
    return _b64u_encode(mac)


def verify_signature(body: bytes, signature: str, secret: str | None = None) -> bool:
    """
    Verify HMAC-SHA256 signature of request body.

    Args:
        body: Raw request body bytes
        signature: Base64-URL encoded HMAC signature
        secret: Signing secret (default: gateway secret)

    Returns:
        True if signature is valid
    """
    return hmac.compare_digest(sign_body(body, secret), signature or "")


async def _signed_body(request: Request, header: str, secret: str) -> bytes:
    signature = request.headers.get(header)
    if not signature:
        raise Unauthorized(f"Missing {header} header")

    # Cache body for FastAPI to re-read during JSON parsing
    if not hasattr(request.state, "_body_cache"):
        request.state._body_cache = await request.body()

    body = request.state._body_cache
    if not verify_signature(body, signature, secret):
        raise Unauthorized("Invalid signature")
    return body


async def admin_basic_auth(credentials: HTTPBasicCredentials = Depends(_security)) -> str:
    """
    Validate HTTP Basic Auth credentials for operator endpoints.

    Raises:
        HTTPException: If credentials are invalid
    """
    username_ok = hmac.compare_digest(credentials.username, settings.admin_user)
    password_ok = hmac.compare_digest(credentials.password, settings.admin_pass)
    if not (username_ok and password_ok):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return str(credentials.username)


async def actor_auth(request: Request) -> uuid.UUID:
    """
    Authenticate a gateway-forwarded request and return the acting user id.

    Expects headers:
    - X-Actor-Id: UUID of the authenticated user
    - X-Actor-Signature: HMAC-SHA256 signature of request body

    Raises:
        Unauthorized: Missing identity or bad signature
        ValidationError: Malformed X-Actor-Id
    """
    actor_str = request.headers.get("X-Actor-Id")
    if not actor_str:
        raise Unauthorized()

    await _signed_body(request, "X-Actor-Signature", settings.internal_auth_secret)

    try:
        return uuid.UUID(actor_str)
    except ValueError:
        raise ValidationError("Invalid X-Actor-Id format") from None


async def service_auth(request: Request) -> None:
    """Authenticate classifier calls by their X-Service-Signature."""
    await _signed_body(request, "X-Service-Signature", settings.classifier_auth_secret)
