"""
Auth utilities for the promptlib API.

Validates bearer JWTs issued by the identity provider and extracts the caller's
identity from the request. Falls back to the X-User-Id header when
ALLOW_HEADER_AUTH is enabled (development and tests).

A request without any identity is a guest; routes decide whether guests are
allowed through the principal dependencies in `promptlib.api.deps`.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from promptlib.core.config import settings
from promptlib.core.database import get_db
from promptlib.core.errors import AuthenticationError
from promptlib.models.user import UserProfile

logger = logging.getLogger("promptlib")


@dataclass(frozen=True)
class Identity:
    """Caller identity as asserted by the token (or dev header)."""
    user_id: str
    email: Optional[str] = None
    name: Optional[str] = None
    is_admin_claim: bool = False


def verify_jwt_token(token: str) -> Dict[str, Any]:
    """
    Verify a bearer JWT and return its claims.

    Args:
        token: Raw JWT string (without "Bearer " prefix)

    Returns:
        Decoded claims dict with keys: sub, email, name, public_metadata, etc.

    Raises:
        AuthenticationError: token is expired, malformed or unsigned by us
    """
    secret = settings.AUTH_JWT_SECRET
    if not secret:
        raise AuthenticationError("Bearer authentication is not configured")

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=settings.jwt_algorithms(),
            options={"verify_signature": True, "verify_exp": True, "verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthenticationError("Invalid token")

    if not claims.get("sub"):
        raise AuthenticationError("Token has no subject")
    return claims


def is_admin_claims(claims: Dict[str, Any]) -> bool:
    metadata = claims.get("public_metadata") or {}
    if not isinstance(metadata, dict):
        return False
    return bool(metadata.get("isAdmin")) or metadata.get("role") == "admin"


def get_identity(request: Request) -> Optional[Identity]:
    """
    Extract the caller identity from request context.

    Priority:
    1. Bearer JWT from Authorization header
    2. X-User-Id header (only when ALLOW_HEADER_AUTH is on)
    3. None (guest)

    An invalid bearer token is rejected outright rather than degrading to guest.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        claims = verify_jwt_token(auth_header[7:].strip())
        return Identity(
            user_id=str(claims["sub"]),
            email=claims.get("email"),
            name=claims.get("name"),
            is_admin_claim=is_admin_claims(claims),
        )

    if settings.ALLOW_HEADER_AUTH:
        header_user = request.headers.get("X-User-Id", "").strip()
        if header_user:
            return Identity(user_id=header_user)

    return None


def get_current_user(
    identity: Optional[Identity] = Depends(get_identity),
    db: Session = Depends(get_db),
) -> Optional[UserProfile]:
    """
    Dependency: the current user's profile, or None for guests.

    First sight of a user creates the profile. The returned profile carries
    the plan derived from the subscription mirror for this request.
    """
    if identity is None:
        return None

    from promptlib.features.users.service import get_or_create_user
    return get_or_create_user(
        db,
        identity.user_id,
        email=identity.email,
        display_name=identity.name,
        is_admin_claim=identity.is_admin_claim,
    )
