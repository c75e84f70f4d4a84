"""
DevDoc Backend — Auth Service (User Store)
============================================

What:  Registration, login, password hashing and bearer token issuance.
How:   passlib's CryptContext (bcrypt) for salted hashes, python-jose for
       HS256 tokens whose `sub` claim is the user id. Hash/verify run in
       Starlette's threadpool so bcrypt does not stall the event loop.
Who:   Called by routes/auth.py and by the auth gate in dependencies.py.

Token format:
    {"sub": "<user uuid>", "iat": <issued>, "exp": <issued + 7 days>}
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.exceptions import ConflictError, InvalidCredentialsError, ValidationError
from app.models.user import User
from app.schemas.auth import AuthResponse, UserResponse

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)


# ── Password & token helpers ──────────────────────────────────────────────

def hash_password(password: str) -> str:
    """Return a salted bcrypt hash."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: uuid.UUID, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a bearer token bound to `user_id`."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_expiration_days))
    claims = {"sub": str(user_id), "iat": now, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[uuid.UUID]:
    """
    Verify a token and return its subject.

    Returns None for anything unusable: bad signature, expired, malformed,
    missing subject, or a subject that is not a UUID.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    subject = payload.get("sub")
    if not subject:
        return None
    try:
        return uuid.UUID(subject)
    except (TypeError, ValueError):
        return None


class AuthService:
    """
    Business logic for accounts.

    Responsibilities:
        - register(): create a user and issue a token
        - login(): check credentials and issue a token
        - get_user(): resolve a token subject for the auth gate
    """

    async def get_user_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
        return await db.get(User, user_id)

    async def register(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Create an account.

        Raises:
            ValidationError: email or password missing
            ConflictError: email already registered (also on a concurrent
                           insert that trips the unique index)
        """
        if not email or not password:
            raise ValidationError(message="Email and password are required")

        email = email.strip().lower()
        if await self.get_user_by_email(db, email) is not None:
            raise ConflictError()

        user = User(email=email, password_hash=await run_in_threadpool(hash_password, password))
        db.add(user)
        try:
            await db.flush()
        except IntegrityError:
            logger.info("Concurrent registration for an existing email")
            raise ConflictError()

        logger.info("Registered user %s", user.id)
        return AuthResponse(
            token=create_access_token(user.id),
            user=UserResponse.model_validate(user),
        )

    async def login(self, db: AsyncSession, email: str, password: str) -> AuthResponse:
        """
        Authenticate with email and password.

        Raises:
            ValidationError: email or password missing
            InvalidCredentialsError: unknown email or wrong password (same message)
        """
        if not email or not password:
            raise ValidationError(message="Email and password are required")

        user = await self.get_user_by_email(db, email)
        if user is None:
            raise InvalidCredentialsError()
        if not await run_in_threadpool(verify_password, password, user.password_hash):
            raise InvalidCredentialsError(context={"user_id": str(user.id)})

        return AuthResponse(
            token=create_access_token(user.id),
            user=UserResponse.model_validate(user),
        )

    def current_user(self, user: User) -> UserResponse:
        """Minimal public projection of the authenticated identity."""
        return UserResponse.model_validate(user)


auth_service = AuthService()
