"""
Bearer tokens identifying the acting user.

Tokens are issued by whatever login front end sits before this service; all
the customize endpoints need is to verify one and learn the user id. Token
creation is kept for operators and tests.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from src.config import get_settings

TOKEN_TYPE = "access"


class AccessTokenPayload(BaseModel):
    """Verified access token claims."""

    sub: str
    role: str
    exp: datetime
    iat: datetime
    jti: str
    email: Optional[str] = None

    @property
    def user_id(self) -> Optional[uuid.UUID]:
        try:
            return uuid.UUID(self.sub)
        except ValueError:
            return None


class JWTManager:
    """Sign and verify access tokens with the service secret."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = (
            access_token_expire_minutes or settings.access_token_expire_minutes
        )

    def create_access_token(
        self,
        user_id: uuid.UUID,
        email: Optional[str],
        role: str,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime, str]:
        """
        Returns:
            Tuple of (token, expiration_datetime, token_id)
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))
        jti = str(uuid.uuid4())
        claims = {
            "sub": str(user_id),
            "role": role,
            "exp": expire,
            "iat": now,
            "jti": jti,
            "type": TOKEN_TYPE,
        }
        if email:
            claims["email"] = email
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm), expire, jti

    def verify_access_token(self, token: str) -> Optional[AccessTokenPayload]:
        """Decoded claims, or None for a bad signature, expiry or token type."""
        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError:
            return None
        if claims.get("type") != TOKEN_TYPE:
            return None
        try:
            return AccessTokenPayload(
                sub=claims["sub"],
                role=claims.get("role", ""),
                email=claims.get("email"),
                exp=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
                iat=datetime.fromtimestamp(claims["iat"], tz=timezone.utc),
                jti=claims.get("jti", ""),
            )
        except (KeyError, TypeError, ValueError):
            return None


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the default JWT manager."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def create_access_token(
    user_id: uuid.UUID,
    email: Optional[str],
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, datetime, str]:
    return get_jwt_manager().create_access_token(user_id, email, role, expires_delta)


def verify_access_token(token: str) -> Optional[AccessTokenPayload]:
    return get_jwt_manager().verify_access_token(token)
