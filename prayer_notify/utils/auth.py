import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from prayer_notify.config.settings import settings


class AuthUtils:
    """Subscriber access tokens: signed JWTs whose ``sub`` is the subscriber ID"""

    @staticmethod
    def generate_access_token(subscriber_id: str, expires_minutes: int = 15) -> str:
        issued_at = datetime.now(timezone.utc)
        claims = {
            "sub": str(subscriber_id),
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=expires_minutes),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def verify_access_token(token: str) -> Optional[Dict[str, Any]]:
        """Decoded claims, or None for an expired, forged or malformed token."""
        try:
            return jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                options={"require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError:
            return None

    @staticmethod
    def extract_bearer_token(authorization_header: Optional[str]) -> Optional[str]:
        scheme, _, token = (authorization_header or "").strip().partition(" ")
        if scheme.lower() != "bearer":
            return None
        return token.strip() or None
