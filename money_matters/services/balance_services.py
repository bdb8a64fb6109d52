from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from money_matters.models.expense import Expense
from money_matters.models.expense_split import ExpenseSplit
from money_matters.models.group_member import GroupMember
from money_matters.models.user import User
from money_matters.core.utils import qround, to_decimal
from money_matters.services.group_services import require_membership

def group_balance_query(group_id: int):
    """
    One statement: every member joined to what they paid and what they owe
    within the group. balance = paid - owed.
    """
    paid_q = (
        select(
            Expense.paid_by.label("user_id"),
            func.sum(Expense.amount).label("paid")
        )
        .where(Expense.group_id == group_id)
        .group_by(Expense.paid_by)
        .subquery()
    )

    owed_q = (
        select(
            ExpenseSplit.user_id.label("user_id"),
            func.sum(ExpenseSplit.share).label("owed")
        )
        .join(Expense, Expense.id == ExpenseSplit.expense_id)
        .where(Expense.group_id == group_id)
        .group_by(ExpenseSplit.user_id)
        .subquery()
    )

    return (
        select(
            User.id,
            User.name,
            func.coalesce(paid_q.c.paid, 0).label("paid"),
            func.coalesce(owed_q.c.owed, 0).label("owed")
        )
        .join(GroupMember, GroupMember.user_id == User.id)
        .outerjoin(paid_q, paid_q.c.user_id == User.id)
        .outerjoin(owed_q, owed_q.c.user_id == User.id)
        .where(GroupMember.group_id == group_id)
        .order_by(User.name, User.id)
    )

async def get_group_net_balances(db: AsyncSession, group_id: int) -> list[tuple[int, str, Decimal]]:
    res = await db.execute(group_balance_query(group_id))
    return [
        (row.id, row.name, qround(to_decimal(row.paid) - to_decimal(row.owed)))
        for row in res.all()
    ]

async def get_group_balances(db: AsyncSession, group_id: int, user_id: int):
    await require_membership(db, group_id, user_id, "You must be a member of the group to view balances")

    net = await get_group_net_balances(db, group_id)

    return [
        {"user_id": uid, "name": name, "balance": float(balance)}
        for uid, name, balance in net
    ]
