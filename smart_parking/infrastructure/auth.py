# File: smart_parking/infrastructure/auth.py
"""
JWT issuance and verification (PyJWT, HS256)

Tokens carry the user email in the `email` claim; a token whose email
claim is empty is rejected even when the signature is valid.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Callable

import jwt

from ..domain.models import Principal, utc_now

ALGORITHM = "HS256"


class JwtTokenService:
    """TokenIssuer and TokenVerifier over a shared secret"""

    def __init__(
        self,
        secret: str,
        ttl_minutes: int = 60,
        issuer: str = "parking-system",
        clock: Callable[[], datetime] = utc_now
    ):
        if not secret:
            raise ValueError("Token secret cannot be empty")
        self._secret = secret
        self.ttl = timedelta(minutes=ttl_minutes)
        self.issuer = issuer
        self._clock = clock
        self._logger = logging.getLogger(self.__class__.__name__)

    def issue_token(self, email: str) -> str:
        now = self._clock()
        payload = {
            "email": email,
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify_token(self, token: str) -> Optional[Principal]:
        if not token:
            return None
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                options={"require": ["exp", "email"]}
            )
        except jwt.InvalidTokenError as e:
            self._logger.info(f"Rejected token: {e}")
            return None

        email = claims.get("email")
        if not email:
            return None
        return Principal(email=email, expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc))
