from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from money_matters.db.session import get_db
from money_matters.schemas.user import UserOut, UserSummary, PasswordUpdate
from money_matters.models.user import User
from money_matters.services.user_service import search_users_by_email, update_password
from money_matters.core.dependencies import get_current_user

router = APIRouter()

@router.get("/me", response_model=UserOut)
async def read_users_me(current_user: User = Depends(get_current_user)):
    return UserOut.model_validate(current_user)

@router.patch("/me/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    data: PasswordUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await update_password(db, current_user.id, data.current_password, data.new_password)

@router.get("/search", response_model=list[UserSummary])
async def search_users(
    email: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return await search_users_by_email(db, email)
