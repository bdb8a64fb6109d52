from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from money_matters.db.session import get_db
from money_matters.services.group_services import create_group, add_member, list_group_for_user, get_group
from money_matters.services.expense_services import create_expense, list_group_expenses
from money_matters.services.balance_services import get_group_balances
from money_matters.schemas.group import GroupCreate, GroupMemberAdd, GroupOut
from money_matters.schemas.expense import ExpenseCreate, ExpenseOut
from money_matters.schemas.balances import BalanceOut
from money_matters.core.dependencies import get_current_user

router = APIRouter()

@router.post("/", response_model=GroupOut, status_code=status.HTTP_201_CREATED, description="create new group")
async def create_new_group(
    data: GroupCreate,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user)
):
    return await create_group(db, data.name, user.id)

@router.get("/", response_model=list[GroupOut], description="get user groups")
async def my_groups(db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await list_group_for_user(db, user.id)

@router.get("/{group_id}", response_model=GroupOut)
async def fetch_group(group_id: int, db: AsyncSession = Depends(get_db), user = Depends(get_current_user)):
    return await get_group(db, group_id, user.id)

@router.post("/{group_id}/members", response_model=GroupOut)
async def add_user_to_group(
    group_id: int,
    data: GroupMemberAdd,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await add_member(db, group_id, data.user_id, current_user.id)

@router.post("/{group_id}/expenses", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
async def add_expense(
    group_id: int,
    data: ExpenseCreate,
    db: AsyncSession = Depends(get_db),
    current_user = Depends(get_current_user)
):
    return await create_expense(db, group_id, data, current_user.id)

@router.get("/{group_id}/expenses", response_model=list[ExpenseOut], description="get all expenses of the group")
async def fetch_expenses(
    group_id: int,
    db: AsyncSession = Depends(get_db),
    user = Depends(get_current_user)
):
    return await list_group_expenses(db, group_id, user.id)

@router.get("/{group_id}/balances", response_model=list[BalanceOut])
async def group_balances(group_id: int, db: AsyncSession = Depends(get_db), current_user = Depends(get_current_user)):
    return await get_group_balances(db, group_id, current_user.id)
