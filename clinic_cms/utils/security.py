"""
Admin authentication for the CMS write endpoints.

The single admin password is stored as a bcrypt hash (ADMIN_PASSWORD_HASH);
a successful login yields a short-lived JWT that every write route requires.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import bcrypt
from jose import JWTError, jwt
from fastapi import HTTPException, status, Header, Request

from clinic_cms.config import settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_COOKIE = "cms_token"


def hash_password(password: str, rounds: int = 12) -> str:
    """Bcrypt hash suitable for ADMIN_PASSWORD_HASH."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed hash
        return False


def verify_admin_password(password: str) -> bool:
    """
    Check a password against the configured admin hash.

    Raises:
        ValueError: If ADMIN_PASSWORD_HASH is not configured
    """
    if not settings.ADMIN_PASSWORD_HASH:
        raise ValueError("ADMIN_PASSWORD_HASH not configured")
    return verify_password(password, settings.ADMIN_PASSWORD_HASH)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Claims to include in the token
        expires_delta: Lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    claims = data.copy()
    claims.update({"exp": expire, "iat": now, "type": "access"})
    return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Decode a token and check its type. Expiry is enforced by jose.

    Raises:
        HTTPException: 401 if the token is invalid, expired or not an access token
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token", "message": "Authentication token is invalid or expired"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid token type", "message": "Token is not an access token"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def verify_cms_token(
    request: Request,
    authorization: Optional[str] = Header(None, description="Bearer token (fallback to cookie)"),
) -> dict:
    """
    FastAPI dependency guarding CMS write endpoints.
    Reads the token from the Authorization header or the httpOnly cookie.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    token = None
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            token = parts[1]
    if not token:
        token = request.cookies.get(TOKEN_COOKIE)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Missing token", "message": "Authentication required"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return verify_token(token)


def authenticate_admin(password: str) -> dict:
    """
    Verify the admin password and return the claims for a new token.

    Raises:
        HTTPException: 401 for a wrong password, 500 when no hash is configured
    """
    try:
        valid = verify_admin_password(password)
    except ValueError as e:
        logger.error(f"Login attempted without admin password configured: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Authentication not configured", "message": str(e)},
        )

    if not valid:
        logger.warning("Failed CMS login attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid credentials", "message": "Incorrect password"},
        )
    return {"role": "admin", "sub": "cms_admin"}
