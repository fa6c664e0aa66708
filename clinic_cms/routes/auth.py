"""
CMS login routes.
Exchanges the admin password for a JWT used by all write endpoints.
"""
from fastapi import APIRouter, Depends, Request, Response
import logging

from clinic_cms.config import settings
from clinic_cms.schemas import LoginRequest, TokenResponse
from clinic_cms.utils.rate_limit import RATE_LIMITS, limiter
from clinic_cms.utils.security import (
    TOKEN_COOKIE,
    authenticate_admin,
    create_access_token,
    verify_cms_token,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
@limiter.limit(RATE_LIMITS["login"])
async def login(request: Request, response: Response, credentials: LoginRequest):
    """
    Log in with the admin password.

    The token is returned in the body and also set as an httpOnly cookie.

    Raises:
        HTTPException: 401 on a wrong password, 429 when rate limited
    """
    claims = authenticate_admin(credentials.password)
    token = create_access_token(claims)
    expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60

    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=expires_in,
        httponly=True,
        samesite="lax",
    )
    logger.info("CMS admin logged in")
    return TokenResponse(access_token=token, expires_in=expires_in)


@router.get("/verify")
async def verify(payload: dict = Depends(verify_cms_token)):
    """Check that the caller's token is still valid."""
    return {"valid": True, "role": payload.get("role"), "expires_at": payload.get("exp")}


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE)
    return {"message": "Logged out"}
