"""
Shared route dependencies: bearer-token auth and the app-owned catalog cache.
"""
import logging

from fastapi import Header, Request

from pos_backend.services.auth_service import ACCESS, AuthError, auth_service
from pos_backend.services.cache_service import CacheService
from pos_backend.utils.errors import ApiError

logger = logging.getLogger(__name__)


async def require_auth(authorization: str = Header(None)) -> dict:
    """Claims of the `Authorization: Bearer <token>` access token; 401 otherwise."""
    if not authorization or not authorization.startswith("Bearer "):
        raise ApiError(401, "No token provided")

    try:
        return auth_service.verify(authorization[len("Bearer "):], ACCESS)
    except AuthError as e:
        logger.info(f"Rejected access token: {e}")
        raise ApiError(401, "Invalid or expired token", e)


def get_catalog_cache(request: Request) -> CacheService:
    return request.app.state.catalog_cache
