import asyncio
import logging
from datetime import datetime
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from money_matters.models.refresh_token import RefreshToken
from money_matters.core.security import hash_secret, verify_secret
from money_matters.core.utils import utcnow, as_utc

logger = logging.getLogger(__name__)

async def create_refresh_token_record(db: AsyncSession, user_id: int, token: str, expires_at: datetime) -> RefreshToken:
    record = RefreshToken(
        user_id=user_id,
        token_hash=await asyncio.to_thread(hash_secret, token),
        expires_at=expires_at,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record

async def find_by_user_id(db: AsyncSession, user_id: int):
    q = (
        select(RefreshToken)
        .where(RefreshToken.user_id == user_id)
        .order_by(RefreshToken.created_at.desc(), RefreshToken.id.desc())
    )
    result = await db.execute(q)
    return result.scalars().all()

async def validate_refresh_token(db: AsyncSession, user_id: int, token: str) -> RefreshToken | None:
    """
    Find the live stored record matching a presented token.

    Only hashes are stored, so every record of the user is checked against
    the token. Returns None when nothing matches or the match has expired.
    """
    now = utcnow()
    for stored in await find_by_user_id(db, user_id):
        if now >= as_utc(stored.expires_at):
            continue
        # bcrypt is CPU bound; keep it off the event loop
        if await asyncio.to_thread(verify_secret, token, stored.token_hash):
            return stored
    return None

async def revoke_token(db: AsyncSession, token_id: int) -> bool:
    """Delete one record. False when it was already gone (lost a rotation race)."""
    result = await db.execute(
        delete(RefreshToken).where(RefreshToken.id == token_id).execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1

async def revoke_all_user_tokens(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        delete(RefreshToken).where(RefreshToken.user_id == user_id).execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount

async def clean_expired_tokens(db: AsyncSession) -> int:
    result = await db.execute(
        delete(RefreshToken).where(RefreshToken.expires_at <= utcnow()).execution_options(synchronize_session=False)
    )
    await db.commit()

    if result.rowcount:
        logger.info("Swept %s expired refresh tokens", result.rowcount)
    return result.rowcount
