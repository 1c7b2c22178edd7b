"""
JWT verification for the caller identity.

Tokens are issued elsewhere; this service only needs the opaque user id in
``sub``. JWTManager.create_access_token exists for local tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from lessonforge.config import get_settings


class AccessTokenPayload(BaseModel):
    """Decoded access token."""

    sub: str  # opaque user id
    exp: datetime


class JWTManager:
    """JWT creation and verification with the configured key."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: int = 60,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = access_token_expire_minutes

    def create_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))
        payload = {"sub": str(user_id), "exp": expire, "iat": now, "type": "access"}
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_access_token(self, token: str) -> Optional[AccessTokenPayload]:
        """
        Decode an access token.

        Returns:
            The payload, or None when the token is invalid, expired or not an
            access token.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if payload.get("type", "access") != "access" or not payload.get("sub") or "exp" not in payload:
            return None
        return AccessTokenPayload(
            sub=str(payload["sub"]),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )


def verify_access_token(token: str) -> Optional[AccessTokenPayload]:
    return JWTManager().verify_access_token(token)
