from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from money_matters.db.session import get_db
from money_matters.schemas.auth import AuthBundle, RefreshTokenIn
from money_matters.schemas.user import UserCreate, UserLogin
from money_matters.models.user import User
from money_matters.services import auth_service
from money_matters.core.dependencies import get_current_user

router = APIRouter()

@router.post("/register", response_model=AuthBundle, status_code=status.HTTP_201_CREATED)
async def register_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await auth_service.register(db, data.email, data.password, data.name)

@router.post("/login", response_model=AuthBundle)
async def login_user(data: UserLogin, db: AsyncSession = Depends(get_db)):
    return await auth_service.login(db, data.email, data.password)

@router.post("/refresh", response_model=AuthBundle)
async def refresh_token(data: RefreshTokenIn, db: AsyncSession = Depends(get_db)):
    return await auth_service.refresh(db, data.refresh_token)

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout_user(
    data: RefreshTokenIn,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    await auth_service.logout(db, current_user.id, data.refresh_token)

@router.post("/logout-all", status_code=status.HTTP_204_NO_CONTENT)
async def logout_everywhere(db: AsyncSession = Depends(get_db), current_user: User = Depends(get_current_user)):
    await auth_service.logout_all(db, current_user.id)
