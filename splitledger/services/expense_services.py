import logging
from datetime import datetime, timezone
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from splitledger.core.allocation import build_expense_rows
from splitledger.core.dependencies import check_group_membership, get_member_ids
from splitledger.core.exceptions import SplitError
from splitledger.models.expense import Expense
from splitledger.models.expense_payment import ExpensePayment
from splitledger.models.expense_split import ExpenseSplit
from splitledger.models.group import Group
from splitledger.models.group_member import ROLE_ADMIN
from splitledger.schemas.expense import ExpenseCreate

logger = logging.getLogger(__name__)


def _with_rows(q):
    return q.options(selectinload(Expense.payments), selectinload(Expense.splits))


async def get_group_or_404(db: AsyncSession, group_id: int) -> Group:
    group = await db.get(Group, group_id)

    if not group:
        raise HTTPException(404, "Group not found")

    return group


async def create_expense(db: AsyncSession, data: ExpenseCreate, user_id: int):
    group = await get_group_or_404(db, data.group_id)
    await check_group_membership(db, data.group_id, user_id)

    member_ids = await get_member_ids(db, data.group_id)

    # with several payers and no explicit payer, the first one is the primary payer
    paid_by = data.paid_by
    if paid_by is None:
        paid_by = data.paid_by_multiple[0].user_id if data.paid_by_multiple else user_id

    try:
        payment_rows, split_rows = build_expense_rows(
            total_amount=data.amount,
            paid_by=paid_by,
            split_type=data.split_type,
            participants=data.splits,
            payers=data.paid_by_multiple,
            member_ids=member_ids,
        )
    except SplitError as e:
        logger.info("Rejected expense for group %s: %s", data.group_id, e.message)
        raise

    expense = Expense(
        group_id=data.group_id,
        description=data.description,
        amount=data.amount,
        currency=data.currency or group.currency,
        paid_by=paid_by,
        created_by=user_id,
        category=data.category,
        notes=data.notes,
        date=data.date or datetime.now(timezone.utc),
    )
    expense.payments = [ExpensePayment(user_id=uid, amount=amount) for uid, amount in payment_rows]
    expense.splits = [
        ExpenseSplit(user_id=uid, amount=amount, is_paid=is_paid)
        for uid, amount, is_paid in split_rows
    ]

    # one commit for the expense and all of its rows
    db.add(expense)
    await db.commit()

    logger.info(
        "Created expense %s in group %s: %s split %s ways",
        expense.id, expense.group_id, expense.amount, len(split_rows),
    )
    return expense


async def get_group_expenses(db: AsyncSession, group_id: int):
    q = _with_rows(
        select(Expense)
        .where(Expense.group_id == group_id)
        .order_by(Expense.date.desc(), Expense.id.desc())
    )

    res = await db.execute(q)
    return res.scalars().all()


async def _get_expense_or_404(db: AsyncSession, expense_id: int) -> Expense:
    res = await db.execute(_with_rows(select(Expense).where(Expense.id == expense_id)))
    expense = res.scalar_one_or_none()

    if not expense:
        raise HTTPException(404, "Expense not found")

    return expense


async def get_expense_by_id(db: AsyncSession, expense_id: int, user_id: int):
    expense = await _get_expense_or_404(db, expense_id)

    await check_group_membership(db, expense.group_id, user_id)
    return expense


async def delete_expense(db: AsyncSession, expense_id: int, user_id: int):
    expense = await _get_expense_or_404(db, expense_id)
    member = await check_group_membership(db, expense.group_id, user_id)

    if member.role != ROLE_ADMIN and user_id not in (expense.paid_by, expense.created_by):
        raise HTTPException(403, "Only admins or expense creator can delete expenses")

    # payments and splits go with it
    await db.delete(expense)
    await db.commit()

    logger.info("Deleted expense %s from group %s by user %s", expense_id, expense.group_id, user_id)
    return {"status": "deleted"}
