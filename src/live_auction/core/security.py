"""Password hashing and signed credentials.

A credential is an HS256 JWT embedding the user's id and username, so the
identity can be checked without a store round-trip.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

import bcrypt
import jwt

from live_auction.core.errors import UnauthenticatedError


@dataclass(frozen=True)
class Identity:
    """Authenticated subject: user id plus display name."""

    user_id: int
    username: str


def hash_password(password: str, rounds: int = 11) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash.
        return False


@dataclass(frozen=True)
class TokenCodec:
    """Issues and verifies credentials with one secret and algorithm."""

    secret: str
    algorithm: str = "HS256"
    expires_minutes: int = 60

    def issue(self, identity: Identity, now: datetime) -> str:
        payload = {
            "sub": str(identity.user_id),
            "id": identity.user_id,
            "username": identity.username,
            "exp": now + timedelta(minutes=self.expires_minutes),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str | None, now: datetime) -> Identity:
        """Decode a credential. Raises UnauthenticatedError when it is unusable.

        Expiry is checked against `now` from the application clock rather than
        the host clock.
        """
        if not token:
            raise UnauthenticatedError("Token required")
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"], "verify_exp": False},
            )
        except jwt.InvalidTokenError as exc:
            raise UnauthenticatedError("Invalid token") from exc
        if float(payload["exp"]) <= now.timestamp():
            raise UnauthenticatedError("Token expired")
        try:
            return Identity(user_id=int(payload["id"]), username=str(payload["username"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise UnauthenticatedError("Invalid token") from exc
