import uuid
import jwt
from datetime import datetime, timedelta, timezone
from money_matters.core.config import settings

def _encode(data: dict, secret: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    # jti keeps two tokens minted in the same second for the same user distinct
    to_encode.update({"iat": now, "exp": now + lifetime, "jti": uuid.uuid4().hex})

    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGO)

def create_access_token(data: dict, expires_min: int | None = None) -> str:
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_min is None else expires_min
    return _encode(data, settings.JWT_SECRET, timedelta(minutes=minutes))

def create_refresh_token(data: dict, expires_days: int | None = None) -> str:
    days = settings.REFRESH_TOKEN_EXPIRE_DAYS if expires_days is None else expires_days
    return _encode(data, settings.JWT_REFRESH_SECRET, timedelta(days=days))

def decode_access_token(token: str) -> dict:
    """Raises jwt.InvalidTokenError (bad signature, expired, malformed)."""
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGO], options={"require": ["exp", "sub"]})

def decode_refresh_token(token: str) -> dict:
    """Raises jwt.InvalidTokenError (bad signature, expired, malformed)."""
    return jwt.decode(token, settings.JWT_REFRESH_SECRET, algorithms=[settings.JWT_ALGO], options={"require": ["exp", "sub"]})

def get_bearer_token(authorization: str | None) -> str | None:
    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1].strip()
        return token or None
    return None
