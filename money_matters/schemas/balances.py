from pydantic import BaseModel

class BalanceOut(BaseModel):
    user_id: int
    name: str
    balance: float
