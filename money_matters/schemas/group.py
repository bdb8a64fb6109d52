from datetime import datetime
from typing import List
from pydantic import BaseModel, Field
from money_matters.schemas.user import UserSummary

class GroupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)

class GroupMemberAdd(BaseModel):
    user_id: int

class GroupOut(BaseModel):
    id: int
    name: str
    created_by: int
    created_at: datetime | None = None
    members: List[UserSummary] = []
