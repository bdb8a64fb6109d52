import jwt
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession
from money_matters.db.session import get_db
from money_matters.core.exceptions import Unauthorized
from money_matters.core.jwt_config import decode_access_token, get_bearer_token
from money_matters.services.auth_service import validate_user

async def get_current_user(
    authorization: str | None = Header(default=None),
    db: AsyncSession = Depends(get_db),
):
    token = get_bearer_token(authorization)
    if token is None:
        raise Unauthorized("Unauthorized access")

    try:
        payload = decode_access_token(token)
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise Unauthorized("Could not validate credentials")

    return await validate_user(db, user_id)
