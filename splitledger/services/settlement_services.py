import logging
from datetime import datetime, timezone
from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from splitledger.core.allocation import validate_members
from splitledger.core.dependencies import check_group_membership, get_member_ids
from splitledger.core.exceptions import SplitError, ValidationError
from splitledger.models.group_member import ROLE_ADMIN
from splitledger.models.settlement import Settlement
from splitledger.schemas.settlements import SettlementCreate
from splitledger.services.expense_services import get_group_or_404

logger = logging.getLogger(__name__)


def validate_settlement(data: SettlementCreate, member_ids):
    if data.amount <= 0:
        raise ValidationError("Settlement amount must be positive")

    if data.from_user == data.to_user:
        raise ValidationError("A settlement needs two different users")

    validate_members([data.from_user, data.to_user], member_ids, role="settlement party")


async def add_settlement(db: AsyncSession, group_id: int, data: SettlementCreate, user_id: int):
    group = await get_group_or_404(db, group_id)
    await check_group_membership(db, group_id, user_id)

    try:
        validate_settlement(data, await get_member_ids(db, group_id))
    except SplitError as e:
        logger.info("Rejected settlement for group %s: %s", group_id, e.message)
        raise

    settlement = Settlement(
        group_id=group_id,
        from_user=data.from_user,
        to_user=data.to_user,
        amount=data.amount,
        currency=data.currency or group.currency,
        notes=data.notes,
        date=data.date or datetime.now(timezone.utc),
    )
    db.add(settlement)
    await db.commit()

    logger.info(
        "Recorded settlement %s in group %s: %s -> %s (%s)",
        settlement.id, group_id, data.from_user, data.to_user, data.amount,
    )
    return settlement


async def get_group_settlements(db: AsyncSession, group_id: int):
    q = (
        select(Settlement)
        .where(Settlement.group_id == group_id)
        .order_by(Settlement.date.desc(), Settlement.id.desc())
    )

    res = await db.execute(q)
    return res.scalars().all()


async def get_user_settlements(db: AsyncSession, user_id: int):
    q = (
        select(Settlement)
        .where(or_(Settlement.from_user == user_id, Settlement.to_user == user_id))
        .order_by(Settlement.date.desc(), Settlement.id.desc())
    )

    res = await db.execute(q)

    return [
        {
            "id": s.id,
            "group_id": s.group_id,
            "from_user": s.from_user,
            "to_user": s.to_user,
            "amount": s.amount,
            "currency": s.currency,
            "notes": s.notes,
            "date": s.date,
            "type": "paid" if s.from_user == user_id else "received",
        }
        for s in res.scalars().all()
    ]


async def delete_settlement(db: AsyncSession, group_id: int, settlement_id: int, user_id: int):
    settlement = await db.get(Settlement, settlement_id)

    if not settlement or settlement.group_id != group_id:
        raise HTTPException(404, "Settlement not found")

    member = await check_group_membership(db, group_id, user_id)

    if member.role != ROLE_ADMIN and user_id not in (settlement.from_user, settlement.to_user):
        raise HTTPException(403, "Only admins or involved parties can delete settlements")

    await db.delete(settlement)
    await db.commit()

    logger.info("Deleted settlement %s from group %s by user %s", settlement_id, group_id, user_id)
    return {"status": "deleted"}
