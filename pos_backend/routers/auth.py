"""
Auth Router: POS admin login, refresh-token exchange and logout.
"""
from fastapi import APIRouter, Cookie, Response
from fastapi.responses import JSONResponse
import logging

from pos_backend.models.api_models import LoginRequest
from pos_backend.services.auth_service import REFRESH, AuthError, auth_service
from pos_backend.utils.config import settings
from pos_backend.utils.errors import ApiError, error_body

router = APIRouter()
logger = logging.getLogger(__name__)

REFRESH_COOKIE = "refreshToken"


def _set_refresh_cookie(response: Response, token: str):
    response.set_cookie(
        REFRESH_COOKIE,
        token,
        httponly=True,
        samesite="strict",
        secure=settings.is_production,
        max_age=auth_service.ttls[REFRESH],
        path="/",
    )


def _clear_refresh_cookie(response: Response):
    response.delete_cookie(REFRESH_COOKIE, path="/", httponly=True, samesite="strict",
                           secure=settings.is_production)


@router.post("/auth/login")
async def login(payload: LoginRequest, response: Response):
    if not auth_service.check_credentials(payload.username, payload.password):
        logger.warning(f"Failed login for user {payload.username!r}")
        raise ApiError(401, "Invalid credentials")

    _set_refresh_cookie(response, auth_service.issue(REFRESH))
    logger.info("Login successful")
    return auth_service.access_token_response()


@router.post("/auth/refresh")
async def refresh(response: Response, refresh_token: str = Cookie(None, alias=REFRESH_COOKIE)):
    if not refresh_token:
        raise ApiError(401, "No refresh token")

    try:
        claims = auth_service.verify(refresh_token, REFRESH)
    except AuthError as e:
        logger.warning(f"Invalid refresh token attempt: {e}")
        rejected = JSONResponse(status_code=401, content=error_body("Invalid or expired refresh token", e))
        _clear_refresh_cookie(rejected)
        return rejected

    role = claims.get("role", "admin")
    if settings.ENABLE_TOKEN_ROTATION:
        _set_refresh_cookie(response, auth_service.issue(REFRESH, role))
        logger.info("Refresh token rotated")
    return auth_service.access_token_response(role)


@router.post("/auth/logout")
async def logout(response: Response):
    _clear_refresh_cookie(response)
    return {"message": "Logged out successfully"}
