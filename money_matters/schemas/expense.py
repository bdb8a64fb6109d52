from datetime import date as date_type, datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List

class SplitInput(BaseModel):
    user_id: int
    share: Decimal = Field(ge=0, max_digits=10, decimal_places=2)

class ExpenseCreate(BaseModel):
    paid_by: int
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    description: str = ""
    date: date_type | None = None
    splits: List[SplitInput] = Field(min_length=1)

class SplitOut(BaseModel):
    id: int
    user_id: int
    user_name: str
    share: float
    paid: bool

class ExpenseOut(BaseModel):
    id: int
    group_id: int
    paid_by_id: int
    paid_by_name: str
    amount: float
    description: str
    date: date_type
    created_at: datetime | None = None
    splits: List[SplitOut]
