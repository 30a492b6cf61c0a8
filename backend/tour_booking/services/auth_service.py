"""
Authentication service: registration, login and the server-side token
lifecycle (refresh tokens, password reset tokens).
"""

import uuid
from datetime import timedelta
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tour_booking.core.config import get_settings
from tour_booking.core.exceptions import BadRequestError, ConflictError, UnauthorizedError
from tour_booking.core.logging import get_logger
from tour_booking.core.security import (
    create_access_token,
    generate_refresh_token,
    generate_reset_token,
    hash_password,
    verify_password,
)
from tour_booking.db.base import ensure_utc, utcnow
from tour_booking.models.token import PasswordReset, RefreshToken
from tour_booking.models.user import User
from tour_booking.schemas.user import AdminUserCreate, UserCreate, UserLogin

logger = get_logger(__name__)
settings = get_settings()

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset link has been sent"


async def _get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def issue_tokens(db: AsyncSession, user: User) -> tuple[str, str]:
    """Create an access token and persist a new refresh token. Does not commit."""
    access_token = create_access_token(data={"sub": str(user.id), "role": user.role})
    refresh_token = RefreshToken(
        token=generate_refresh_token(),
        user_id=user.id,
        expires_at=utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
    db.add(refresh_token)
    return access_token, refresh_token.token


async def _create_user(db: AsyncSession, user_data: UserCreate, role: str) -> User:
    if await _get_user_by_email(db, user_data.email):
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise ConflictError("User with this email already exists")

    user = User(
        name=user_data.name.strip(),
        email=user_data.email.lower(),
        phone=user_data.phone,
        password_hash=hash_password(user_data.password),
        role=role,
    )
    db.add(user)
    await db.flush()
    return user


async def register(db: AsyncSession, user_data: UserCreate) -> tuple[User, str, str]:
    """
    Register a new user with role USER.
    Raises 409 if the email is already registered.
    """
    user = await _create_user(db, user_data, role="USER")
    access_token, refresh_token = await issue_tokens(db, user)
    await db.commit()
    await db.refresh(user)

    logger.info("user_registered", user_id=str(user.id), email=user.email)
    return user, access_token, refresh_token


async def create_user_by_admin(db: AsyncSession, user_data: AdminUserCreate) -> User:
    user = await _create_user(db, user_data, role=user_data.role)
    await db.commit()
    await db.refresh(user)

    logger.info("user_created_by_admin", user_id=str(user.id), role=user.role)
    return user


async def login(db: AsyncSession, login_data: UserLogin) -> tuple[User, str, str]:
    """
    Authenticate user and issue tokens.
    Raises 401 if credentials are invalid or the account is deactivated.
    """
    user = await _get_user_by_email(db, login_data.email)

    if not user or not verify_password(login_data.password, user.password_hash):
        logger.warning("login_failed", email=login_data.email)
        raise UnauthorizedError("Invalid email or password")

    if not user.is_active:
        logger.warning("login_failed", email=login_data.email, reason="deactivated")
        raise UnauthorizedError("Account has been deactivated")

    access_token, refresh_token = await issue_tokens(db, user)
    await db.commit()

    logger.info("user_logged_in", user_id=str(user.id))
    return user, access_token, refresh_token


async def verify_refresh_token(db: AsyncSession, token: Optional[str]) -> RefreshToken:
    """Look up a refresh token. Expired tokens are deleted when presented."""
    if not token:
        raise UnauthorizedError("Refresh token is required")

    result = await db.execute(select(RefreshToken).where(RefreshToken.token == token))
    stored = result.scalar_one_or_none()
    if not stored:
        raise UnauthorizedError("Invalid refresh token")

    if ensure_utc(stored.expires_at) <= utcnow():
        await db.delete(stored)
        await db.commit()
        logger.info("refresh_token_expired", user_id=str(stored.user_id))
        raise UnauthorizedError("Refresh token expired")

    return stored


async def refresh(db: AsyncSession, token: Optional[str]) -> str:
    """Exchange a valid refresh token for a new access token. The refresh token stays valid."""
    stored = await verify_refresh_token(db, token)

    user = await db.get(User, stored.user_id)
    if not user or not user.is_active:
        raise UnauthorizedError("User not found or deactivated")

    return create_access_token(data={"sub": str(user.id), "role": user.role})


async def logout(db: AsyncSession, token: Optional[str]) -> None:
    if token:
        await db.execute(delete(RefreshToken).where(RefreshToken.token == token))
        await db.commit()


async def revoke_all_user_tokens(db: AsyncSession, user_id: uuid.UUID) -> None:
    """Delete every refresh token of a user. Does not commit."""
    await db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))


async def change_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise BadRequestError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    await revoke_all_user_tokens(db, user.id)
    await db.commit()

    logger.info("password_changed", user_id=str(user.id))


async def forgot_password(db: AsyncSession, email: str) -> Optional[str]:
    """
    Create a one-hour reset token for a known email and return it.
    Returns None for unknown emails; callers answer with the same message
    either way so account existence is not revealed.
    """
    user = await _get_user_by_email(db, email)
    if not user:
        logger.info("password_reset_unknown_email")
        return None

    await db.execute(delete(PasswordReset).where(PasswordReset.email == user.email))
    reset = PasswordReset(
        email=user.email,
        token=generate_reset_token(),
        expires_at=utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
    )
    db.add(reset)
    await db.commit()

    logger.info("password_reset_requested", user_id=str(user.id))
    return reset.token


async def reset_password(db: AsyncSession, token: str, new_password: str) -> User:
    result = await db.execute(
        select(PasswordReset).where(PasswordReset.token == token, PasswordReset.used.is_(False))
    )
    reset = result.scalar_one_or_none()

    if not reset or ensure_utc(reset.expires_at) <= utcnow():
        raise BadRequestError("Invalid or expired reset token")

    user = await _get_user_by_email(db, reset.email)
    if not user:
        raise BadRequestError("Invalid or expired reset token")

    user.password_hash = hash_password(new_password)
    reset.used = True
    await revoke_all_user_tokens(db, user.id)
    await db.commit()

    logger.info("password_reset_completed", user_id=str(user.id))
    return user
