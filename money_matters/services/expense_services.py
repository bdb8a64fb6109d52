import logging
from datetime import date
from decimal import Decimal
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from money_matters.models.expense import Expense
from money_matters.models.expense_split import ExpenseSplit
from money_matters.models.group_member import GroupMember
from money_matters.schemas.expense import ExpenseCreate
from money_matters.core.exceptions import BadRequest, Forbidden, NotFound
from money_matters.core.utils import qround, to_decimal, money
from money_matters.services.group_services import is_member, require_membership

logger = logging.getLogger(__name__)

SPLIT_TOLERANCE = Decimal("0.01")

def _expense_query():
    return (
        select(Expense)
        .options(
            selectinload(Expense.payer),
            selectinload(Expense.splits).selectinload(ExpenseSplit.user),
        )
        .execution_options(populate_existing=True)
    )

def expense_to_dict(expense: Expense) -> dict:
    return {
        "id": expense.id,
        "group_id": expense.group_id,
        "paid_by_id": expense.paid_by,
        "paid_by_name": expense.payer.name,
        "amount": money(expense.amount),
        "description": expense.description,
        "date": expense.date,
        "created_at": expense.created_at,
        "splits": [
            {
                "id": s.id,
                "user_id": s.user_id,
                "user_name": s.user.name,
                "share": money(s.share),
                "paid": s.paid,
            }
            for s in expense.splits
        ],
    }

async def get_expense_record(db: AsyncSession, expense_id: int) -> dict:
    res = await db.execute(_expense_query().where(Expense.id == expense_id))
    expense = res.scalar_one_or_none()

    if not expense:
        raise NotFound("Expense not found")
    return expense_to_dict(expense)

async def create_expense(db: AsyncSession, group_id: int, data: ExpenseCreate, actor_id: int):
    # 1. Actor must belong to the group
    if not await is_member(db, actor_id, group_id):
        raise Forbidden("You must be a member of the group to add expenses")

    # 2. Payer must belong to the group
    if not await is_member(db, data.paid_by, group_id):
        raise BadRequest(f"User with ID {data.paid_by} is not a member of this group")

    user_ids = [s.user_id for s in data.splits]

    # 3. Check duplicates
    if len(user_ids) != len(set(user_ids)):
        raise BadRequest("Duplicate users found in splits")

    # 4. Validate all users in split are members of the group
    q = select(GroupMember.user_id).where(
        GroupMember.group_id == group_id,
        GroupMember.user_id.in_(user_ids)
    )
    res = await db.execute(q)
    member_ids = set(res.scalars().all())

    for uid in user_ids:
        if uid not in member_ids:
            raise BadRequest(f"User with ID {uid} is not a member of this group")

    # 5. Validate sum of splits == total
    amount = qround(to_decimal(data.amount))
    shares = [qround(to_decimal(s.share)) for s in data.splits]
    total = sum(shares, Decimal("0"))
    if abs(total - amount) > SPLIT_TOLERANCE:
        raise BadRequest(f"Total split amount ({qround(total)}) must equal expense amount ({amount})")

    # Rounding residue within tolerance goes to the largest share so splits sum exactly
    residue = amount - total
    if residue:
        largest = max(range(len(shares)), key=lambda i: shares[i])
        shares[largest] += residue

    # 6. Expense and splits go in together or not at all
    try:
        expense = Expense(
            group_id=group_id,
            paid_by=data.paid_by,
            amount=amount,
            description=data.description,
            date=data.date or date.today(),
        )
        db.add(expense)
        await db.flush()

        for s, share in zip(data.splits, shares):
            db.add(ExpenseSplit(
                expense_id=expense.id,
                user_id=s.user_id,
                share=share,
                paid=s.user_id == data.paid_by,
            ))

        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Failed to record expense in group %s", group_id)
        raise

    logger.info("User %s recorded expense %s in group %s", actor_id, expense.id, group_id)
    return await get_expense_record(db, expense.id)

async def list_group_expenses(db: AsyncSession, group_id: int, user_id: int):
    await require_membership(db, group_id, user_id, "You must be a member of the group to view expenses")

    q = (
        _expense_query()
        .where(Expense.group_id == group_id)
        .order_by(Expense.date.desc(), Expense.created_at.desc(), Expense.id.desc())
    )
    res = await db.execute(q)
    return [expense_to_dict(e) for e in res.scalars().all()]
