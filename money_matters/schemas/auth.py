from pydantic import BaseModel
from money_matters.schemas.user import UserSummary

class RefreshTokenIn(BaseModel):
    refresh_token: str

class AuthBundle(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserSummary
