import logging
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from money_matters.models.user import User
from money_matters.core.security import hash_password, verify_password
from money_matters.core.exceptions import Conflict, NotFound, Unauthorized

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 3
SEARCH_LIMIT = 10

def escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

def normalize_email(email: str) -> str:
    return email.strip().lower()

async def get_user_by_email(db: AsyncSession, email:str):
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()

async def get_user_by_id(db: AsyncSession, id:int):
    result = await db.execute(select(User).where(User.id == id))
    return result.scalar_one_or_none()

async def get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFound(f"User with ID {user_id} not found")
    return user

async def create_user(db: AsyncSession, email: str, password: str, name: str) -> User:
    existing = await get_user_by_email(db, email)
    if existing:
        raise Conflict("Email already registered")

    user = User(
        email = normalize_email(email),
        name = name.strip(),
        password_hash = hash_password(password)
    )

    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent registration took the email between check and insert
        await db.rollback()
        raise Conflict("Email already registered")
    await db.refresh(user)

    logger.info("Registered user %s", user.id)
    return user

async def update_password(db: AsyncSession, user_id: int, current_password: str, new_password: str):
    user = await get_user_or_404(db, user_id)

    if not verify_password(current_password, user.password_hash):
        raise Unauthorized("Invalid credentials")

    user.password_hash = hash_password(new_password)
    await db.commit()

    logger.info("Password updated for user %s", user_id)

async def search_users_by_email(db: AsyncSession, fragment: str | None):
    """Case-insensitive substring search; short fragments return nothing."""
    if not fragment or len(fragment.strip()) < SEARCH_MIN_LENGTH:
        return []

    pattern = f"%{escape_like(fragment.strip().lower())}%"
    q = (
        select(User)
        .where(func.lower(User.email).like(pattern, escape="\\"))
        .order_by(User.email)
        .limit(SEARCH_LIMIT)
    )
    result = await db.execute(q)
    return result.scalars().all()
