"""Signed, time-limited session tokens.

A token carries the subject id, the role and an expiry, signed with HS256.
Verification is a pure signature/claims check: no database access, so guard
decisions stay synchronous and cheap. Anything that fails verification is
reported as a :class:`~dashboard.errors.TokenInvalid` subclass and callers
treat the session as anonymous.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Callable

import jwt

from ..config import settings
from ..errors import MalformedToken, TokenExpired, TokenInvalid
from .access import Role

ALGORITHM = "HS256"
TOKEN_TYPE = "dashboard_session"

@dataclass(frozen=True)
class Identity:
    user_id: int
    role: Role
    expires_at: datetime

class TokenService:
    def __init__(
        self,
        secret: str,
        ttl: timedelta,
        clock: Callable[[], datetime] | None = None,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self.ttl = ttl
        self._clock = clock or (lambda: datetime.now(dt_timezone.utc))

    def issue(self, user) -> str:
        now = self._clock()
        claims = {
            "sub": str(user.id),
            "role": Role.parse(user.role).value,
            "type": TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str | None) -> Identity:
        if not token or not isinstance(token, str):
            raise MalformedToken("No session token")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                # time claims are checked below against the service clock
                options={"require": ["exp", "sub", "role"], "verify_exp": False, "verify_iat": False},
            )
        except jwt.DecodeError as exc:
            # covers bad base64/JSON and signature mismatch
            raise MalformedToken("Session token could not be decoded") from exc
        except jwt.PyJWTError as exc:
            raise TokenInvalid(f"Session token rejected: {exc}") from exc

        try:
            expires_at = datetime.fromtimestamp(float(payload["exp"]), tz=dt_timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError) as exc:
            raise MalformedToken("Session token has a malformed expiry") from exc
        if self._clock() >= expires_at:
            raise TokenExpired("Session token has expired")

        if payload.get("type") != TOKEN_TYPE:
            raise TokenInvalid("Invalid session token type")
        try:
            user_id = int(payload["sub"])
            role = Role.parse(payload["role"])
        except (TypeError, ValueError) as exc:
            raise MalformedToken("Session token has malformed claims") from exc

        return Identity(
            user_id=user_id,
            role=role,
            expires_at=expires_at,
        )

def get_token_service() -> TokenService:
    return TokenService(settings.secret_key, timedelta(seconds=settings.jwt_expiration_seconds))
