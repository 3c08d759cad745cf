from fastapi import HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from splitledger.core.jwt_config import decode_token, get_token_from_cookie
from splitledger.models.group_member import GroupMember

async def get_current_user(request: Request) -> int:
    token = get_token_from_cookie(request=request)
    payload = decode_token(token)
    user_id = payload.get("sub")

    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Could not validate credentials")

async def get_membership(db: AsyncSession, group_id: int, user_id: int):
    q = select(GroupMember).where(
        GroupMember.group_id == group_id,
        GroupMember.user_id == user_id
    )
    res = await db.execute(q)
    return res.scalar_one_or_none()

async def check_group_membership(db: AsyncSession, group_id: int, user_id: int):
    member = await get_membership(db, group_id, user_id)

    if not member:
        raise HTTPException(403, "You are not a member of this group")

    return member

async def get_member_ids(db: AsyncSession, group_id: int) -> list[int]:
    q = (
        select(GroupMember.user_id)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.id)
    )
    res = await db.execute(q)
    return list(res.scalars().all())
