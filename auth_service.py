"""
FitTrack — Auth Service
Account registration and login, bcrypt password storage, and the
access/refresh JWT pair handed to the mobile client.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
import uuid

import bcrypt
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import logging

from config import settings
from models import User
from schemas import UserRegisterSchema, TokenResponseSchema, UserPublicSchema

log = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"


# ══════════════════════════════════════════════════════════════════════════════
# PASSWORDS
# ══════════════════════════════════════════════════════════════════════════════

def hash_password(plain: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


# ══════════════════════════════════════════════════════════════════════════════
# TOKENS
# ══════════════════════════════════════════════════════════════════════════════

def _encode(claims: dict, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "type": token_type,
        "jti": uuid.uuid4().hex,
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_access_token(user_id: int, email: str, name: Optional[str] = None) -> str:
    claims = {"sub": str(user_id), "email": email}
    if name:
        claims["name"] = name
    return _encode(claims, ACCESS, timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user_id: int) -> str:
    return _encode({"sub": str(user_id)}, REFRESH, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, expected_type: Optional[str] = None) -> dict:
    """
    Verify signature, expiry, issuer and audience. With expected_type set,
    a token of the other kind is rejected as well.
    """
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e}")

    if expected_type and payload.get("type") != expected_type:
        raise ValueError(f"Expected a {expected_type} token.")
    return payload


def token_user_id(token: str, expected_type: str = ACCESS) -> int:
    payload = decode_token(token, expected_type)
    try:
        return int(payload["sub"])
    except (KeyError, ValueError):
        raise ValueError("Invalid token: malformed subject.")


def issue_tokens(user: User) -> TokenResponseSchema:
    return TokenResponseSchema(
        access_token=create_access_token(user.id, user.email, user.name),
        refresh_token=create_refresh_token(user.id),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserPublicSchema.model_validate(user),
    )


# ══════════════════════════════════════════════════════════════════════════════
# ACCOUNTS
# ══════════════════════════════════════════════════════════════════════════════

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    # Stored addresses are lower-cased on write
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    return await db.get(User, user_id)


async def create_user(db: AsyncSession, data: UserRegisterSchema) -> User:
    if await get_user_by_email(db, data.email):
        raise ValueError("This email address is already in use.")

    user = User(
        email=data.email.lower(),
        name=data.name,
        hashed_password=hash_password(data.password),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    log.info(f"Registered user {user.id}")
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.hashed_password):
        raise ValueError("Incorrect email or password.")
    if not user.is_active:
        raise ValueError("This account has been deactivated.")
    return user


async def refresh_session(db: AsyncSession, refresh_token: str) -> User:
    """Resolve a refresh token to its still-active owner."""
    user = await get_user_by_id(db, token_user_id(refresh_token, REFRESH))
    if user is None or not user.is_active:
        raise ValueError("User not found or deactivated.")
    return user


async def change_password(db: AsyncSession, user: User, current: str, new: str) -> None:
    if not verify_password(current, user.hashed_password):
        raise ValueError("Current password is incorrect.")
    user.hashed_password = hash_password(new)
    await db.flush()
    log.info(f"Password changed for user {user.id}")
