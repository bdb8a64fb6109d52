import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from money_matters.core.config import settings
from money_matters.core.exceptions import AppError, app_error_handler
from money_matters.db.base import Base
from money_matters.db.session import engine, async_session, get_db
from money_matters.services.refresh_token_service import clean_expired_tokens
from money_matters.api.v1.routes.auth import router as auth_router
from money_matters.api.v1.routes.user import router as user_router
from money_matters.api.v1.routes.group import router as group_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        await clean_expired_tokens(db)

    logger.info("%s %s started", settings.PROJECT_NAME, settings.PROJECT_VERSION)
    yield
    await engine.dispose()

app = FastAPI(title=settings.PROJECT_NAME, version=settings.PROJECT_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)

@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} API is live"}

@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    try:
        await db.execute(text("SELECT 1"))
        return {"status": "online", "database": "connected"}
    except Exception as e:
        logger.warning("Health check failed: %s", e)
        return {"status": "online", "database": "disconnected"}

app.include_router(auth_router, prefix="/api/v1/auth", tags=["auth"])
app.include_router(user_router, prefix="/api/v1/users", tags=["users"])
app.include_router(group_router, prefix="/api/v1/groups", tags=["groups"])
