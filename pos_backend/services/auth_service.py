"""
Auth Service: HS256 JWTs for the single POS admin login.

Access and refresh tokens are signed with different secrets so one can never
stand in for the other; the `type` claim is checked as well.
"""
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from pos_backend.utils.config import settings

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"
ALGORITHM = "HS256"


class AuthError(Exception):
    """Credentials or token rejected."""


def _matches(given: Optional[str], expected: str) -> bool:
    return hmac.compare_digest((given or "").encode("utf-8"), expected.encode("utf-8"))


class AuthService:
    def __init__(self, secret_key: Optional[str] = None, refresh_secret_key: Optional[str] = None,
                 access_ttl: Optional[int] = None, refresh_ttl: Optional[int] = None):
        self.secrets = {
            ACCESS: secret_key or settings.SECRET_KEY,
            REFRESH: refresh_secret_key or settings.REFRESH_SECRET_KEY,
        }
        self.ttls = {
            ACCESS: access_ttl or settings.ACCESS_TOKEN_TTL_MINUTES * 60,
            REFRESH: refresh_ttl or settings.REFRESH_TOKEN_TTL_HOURS * 3600,
        }

    def check_credentials(self, username: str, password: str) -> bool:
        expected_user = settings.POS_ADMIN_USERNAME
        expected_pwd = settings.POS_ADMIN_PASSWORD
        if not expected_user or not expected_pwd:
            logger.warning("POS_ADMIN_USERNAME/POS_ADMIN_PASSWORD not set. Login disabled.")
            return False
        # Both comparisons always run
        user_ok = _matches(username, expected_user)
        pwd_ok = _matches(password, expected_pwd)
        return user_ok and pwd_ok

    def issue(self, kind: str, role: str = "admin") -> str:
        expires = datetime.now(timezone.utc) + timedelta(seconds=self.ttls[kind])
        return jwt.encode({"role": role, "type": kind, "exp": expires}, self.secrets[kind], algorithm=ALGORITHM)

    def verify(self, token: Optional[str], kind: str) -> dict:
        """Claims of a valid, unexpired token of the given kind. Raises AuthError otherwise."""
        if not token:
            raise AuthError("Malformed token")
        try:
            claims = jwt.decode(token, self.secrets[kind], algorithms=[ALGORITHM],
                                options={"require": ["exp"]})
        except jwt.ExpiredSignatureError:
            raise AuthError("Token expired")
        except jwt.InvalidTokenError as e:
            raise AuthError(f"Invalid token: {e}")
        if claims.get("type") != kind:
            raise AuthError("Wrong token type")
        return claims

    def access_token_response(self, role: str = "admin") -> dict:
        return {
            "accessToken": self.issue(ACCESS, role),
            "tokenType": "Bearer",
            "expiresIn": f"{self.ttls[ACCESS] // 60}m",
        }


auth_service = AuthService()
