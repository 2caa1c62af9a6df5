"""Registration, login and credential checks."""
import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from live_auction.clock import Clock
from live_auction.core.errors import ConflictError, UnauthenticatedError
from live_auction.core.security import (Identity, TokenCodec, hash_password,
                                        verify_password)
from live_auction.db.models import User
from live_auction.db.sessions import SessionFactory, session_scope
from live_auction.schemas import (LoginRequest, TokenResponse, UserCreate,
                                  UserOut)

logger = logging.getLogger(__name__)


class UserService:
    """Accounts and the signed credentials that identify them."""

    def __init__(
        self,
        session_factory: SessionFactory,
        codec: TokenCodec,
        clock: Clock,
        bcrypt_rounds: int = 11,
    ) -> None:
        self._session_factory = session_factory
        self._codec = codec
        self._clock = clock
        self._rounds = bcrypt_rounds

    async def register(self, data: UserCreate) -> UserOut:
        """Create an account. Raises ConflictError if the username is taken."""
        # bcrypt is CPU-bound; keep it off the event loop.
        password_hash = await asyncio.to_thread(hash_password, data.password, self._rounds)
        try:
            async with session_scope(self._session_factory) as session:
                existing = await session.execute(select(User.id).where(User.username == data.username))
                if existing.first() is not None:
                    raise ConflictError(f"Username '{data.username}' is already taken")
                user = User(username=data.username, password_hash=password_hash)
                session.add(user)
                await session.flush()
                out = UserOut.model_validate(user)
        except IntegrityError as exc:
            raise ConflictError(f"Username '{data.username}' is already taken") from exc
        logger.info("Registered user %s (%s)", out.username, out.id)
        return out

    async def login(self, data: LoginRequest) -> TokenResponse:
        """Check the password and issue a credential."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(select(User).where(User.username == data.username))
            user = result.scalar_one_or_none()
        if user is None:
            raise UnauthenticatedError("Invalid username or password")
        valid = await asyncio.to_thread(verify_password, data.password, user.password_hash)
        if not valid:
            raise UnauthenticatedError("Invalid username or password")
        identity = Identity(user_id=user.id, username=user.username)
        token = self._codec.issue(identity, self._clock.now())
        return TokenResponse(access_token=token, user=UserOut.model_validate(user))

    def authenticate(self, token: str | None) -> Identity:
        """Verify a credential without touching the store."""
        return self._codec.verify(token, self._clock.now())
