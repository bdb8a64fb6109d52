from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=100)

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class UserSummary(BaseModel):
    id: int
    email: str
    name: str

    class Config:
        from_attributes = True

class UserOut(UserSummary):
    created_at: datetime | None = None

class PasswordUpdate(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6)
