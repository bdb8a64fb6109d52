import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload
from money_matters.models.group import Group
from money_matters.models.group_member import GroupMember
from money_matters.models.user import User
from money_matters.core.exceptions import Forbidden, NotFound

logger = logging.getLogger(__name__)

async def is_member(db: AsyncSession, user_id: int, group_id: int) -> bool:
    q = select(GroupMember.id).where(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    )
    res = await db.execute(q)
    return res.first() is not None

async def get_group_or_404(db: AsyncSession, group_id: int) -> Group:
    res = await db.execute(select(Group).where(Group.id == group_id))
    group = res.scalar_one_or_none()

    if not group:
        raise NotFound(f"Group with ID {group_id} not found")
    return group

async def require_membership(db: AsyncSession, group_id: int, user_id: int, detail: str = "You are not a member of this group"):
    """Missing group -> NotFound, outsider -> Forbidden."""
    group = await get_group_or_404(db, group_id)

    if not await is_member(db, user_id, group_id):
        raise Forbidden(detail)
    return group

async def list_group_members(db: AsyncSession, group_id: int):
    q = (
        select(User)
        .join(GroupMember, User.id == GroupMember.user_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.id)
    )
    result = await db.execute(q)
    return result.scalars().all()

def _to_group_out(group: Group, members) -> dict:
    return {
        "id": group.id,
        "name": group.name,
        "created_by": group.created_by,
        "created_at": group.created_at,
        "members": [{"id": m.id, "email": m.email, "name": m.name} for m in members],
    }

async def _group_out(db: AsyncSession, group: Group) -> dict:
    members = await list_group_members(db, group.id)
    return _to_group_out(group, members)

async def create_group(db: AsyncSession, name: str, creator_id: int):
    group = Group(name=name.strip(), created_by=creator_id)
    db.add(group)
    await db.flush()

    # creator is always a member
    db.add(GroupMember(group_id=group.id, user_id=creator_id))

    await db.commit()
    await db.refresh(group)

    logger.info("User %s created group %s", creator_id, group.id)
    return await _group_out(db, group)

async def list_group_for_user(db: AsyncSession, user_id: int):
    q = (
        select(Group)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .where(GroupMember.user_id == user_id)
        .options(selectinload(Group.members).selectinload(GroupMember.user))
        .order_by(Group.created_at.desc(), Group.id.desc())
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    groups = result.scalars().all()

    return [
        _to_group_out(g, [m.user for m in sorted(g.members, key=lambda m: m.id)])
        for g in groups
    ]

async def get_group(db: AsyncSession, group_id: int, user_id: int):
    group = await require_membership(db, group_id, user_id)
    return await _group_out(db, group)

async def add_member(db: AsyncSession, group_id: int, user_id: int, actor_id: int):
    group = await require_membership(db, group_id, actor_id)

    res = await db.execute(select(User).where(User.id == user_id))
    if res.scalar_one_or_none() is None:
        raise NotFound("User to add not found")

    if await is_member(db, user_id, group_id):
        raise Forbidden("User is already a member of this group")

    db.add(GroupMember(group_id=group_id, user_id=user_id))
    try:
        await db.commit()
    except IntegrityError:
        # a concurrent add inserted the same membership first
        await db.rollback()
        raise Forbidden("User is already a member of this group")

    logger.info("User %s added user %s to group %s", actor_id, user_id, group_id)
    return await _group_out(db, group)
