"""
Session management: issuing, rotating and revoking credential pairs.

A login hands out a short-lived access token and a long-lived refresh token,
each signed with its own secret. Refresh tokens are stored only as bcrypt
hashes and are single-use: a successful refresh deletes the stored record
and issues a fresh pair.
"""

import logging
from datetime import timedelta
import jwt
from sqlalchemy.ext.asyncio import AsyncSession
from money_matters.core.config import settings
from money_matters.core.exceptions import BadRequest, Unauthorized
from money_matters.core.jwt_config import create_access_token, create_refresh_token, decode_refresh_token
from money_matters.core.security import verify_password
from money_matters.core.utils import utcnow
from money_matters.models.user import User
from money_matters.services import refresh_token_service
from money_matters.services.user_service import create_user, get_user_by_email, get_user_or_404

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid refresh token"

async def authenticate_user(db: AsyncSession, email: str, password: str):
    user = await get_user_by_email(db, email)
    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    return user

async def register(db: AsyncSession, email: str, password: str, name: str) -> dict:
    user = await create_user(db, email, password, name)
    return await generate_tokens(db, user)

async def login(db: AsyncSession, email: str, password: str) -> dict:
    user = await authenticate_user(db, email, password)

    if not user:
        logger.info("Failed login attempt")
        raise Unauthorized(INVALID_CREDENTIALS)

    return await generate_tokens(db, user)

def _subject(payload: dict) -> int | None:
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None

async def refresh(db: AsyncSession, refresh_token: str) -> dict:
    try:
        payload = decode_refresh_token(refresh_token)
    except jwt.InvalidTokenError:
        raise Unauthorized(INVALID_REFRESH_TOKEN)

    user_id = _subject(payload)
    if user_id is None:
        raise Unauthorized(INVALID_REFRESH_TOKEN)

    stored = await refresh_token_service.validate_refresh_token(db, user_id, refresh_token)
    if stored is None:
        raise Unauthorized(INVALID_REFRESH_TOKEN)

    user = await get_user_or_404(db, user_id)

    # A concurrent refresh with the same token may already have deleted it
    if not await refresh_token_service.revoke_token(db, stored.id):
        raise Unauthorized(INVALID_REFRESH_TOKEN)

    logger.info("Rotated refresh token %s for user %s", stored.id, user_id)
    return await generate_tokens(db, user)

async def logout(db: AsyncSession, user_id: int, refresh_token: str) -> None:
    try:
        payload = decode_refresh_token(refresh_token)
    except jwt.InvalidTokenError:
        raise BadRequest(INVALID_REFRESH_TOKEN)

    if _subject(payload) != user_id:
        raise BadRequest("Token does not match user")

    stored = await refresh_token_service.validate_refresh_token(db, user_id, refresh_token)

    if stored:
        await refresh_token_service.revoke_token(db, stored.id)
        logger.info("User %s logged out session %s", user_id, stored.id)

async def logout_all(db: AsyncSession, user_id: int) -> None:
    count = await refresh_token_service.revoke_all_user_tokens(db, user_id)
    logger.info("User %s logged out of %s sessions", user_id, count)

async def validate_user(db: AsyncSession, user_id: int) -> User:
    return await get_user_or_404(db, user_id)

async def generate_tokens(db: AsyncSession, user: User) -> dict:
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
    }

    access = create_access_token(claims)
    refresh_token = create_refresh_token(claims)

    expires_at = utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    await refresh_token_service.create_refresh_token_record(db, user.id, refresh_token, expires_at)

    return {
        "access_token": access,
        "refresh_token": refresh_token,
        "token_type": "bearer",
        "user": {
            "id": user.id,
            "email": user.email,
            "name": user.name,
        },
    }
