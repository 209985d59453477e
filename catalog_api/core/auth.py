# catalog_api/core/auth.py
from dataclasses import dataclass
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from catalog_api.core.config import get_settings

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can return our own 401 message.
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CallerIdentity:
    """
    Pre-validated identity of the admin caller.

    Token issuance lives outside this service; we only need to know the
    token was signed with our secret and has not expired.
    """

    subject: str | None
    claims: dict[str, Any]


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an admin access token (JWT).

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp), when present
      - audience is NOT verified

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def require_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> CallerIdentity:
    """
    Enforce a valid admin token on a route.

    Returns:
        The caller identity built from the token claims.

    Raises:
        HTTPException(401): missing header or invalid token.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization token required",
        )

    claims = decode_access_token(credentials.credentials)
    subject = claims.get("sub") or claims.get("email") or claims.get("username")
    return CallerIdentity(
        subject=str(subject) if subject is not None else None,
        claims=claims,
    )
