import logging
from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from splitledger.core.balances import compute_balances, pairwise_balances, suggest_settlements
from splitledger.core.dependencies import check_group_membership
from splitledger.models.group_member import GroupMember
from splitledger.schemas.balances import BalanceOut, GroupBalanceOut, PairwiseBalanceOut, SettlementSuggestion
from splitledger.schemas.expense import ExpenseOut
from splitledger.schemas.export import GroupExportOut, GroupOut, MemberOut
from splitledger.schemas.ledger import LedgerExpense, LedgerSettlement
from splitledger.schemas.settlements import SettlementOut
from splitledger.services.expense_services import get_group_expenses, get_group_or_404
from splitledger.services.settlement_services import get_group_settlements

logger = logging.getLogger(__name__)


async def _load_group_rows(db: AsyncSession, group_id: int):
    expenses = await get_group_expenses(db, group_id)
    settlements = await get_group_settlements(db, group_id)

    res = await db.execute(
        select(GroupMember)
        .where(GroupMember.group_id == group_id)
        .order_by(GroupMember.id)
    )
    members = res.scalars().all()

    logger.debug(
        "Loaded ledger for group %s: %s expenses, %s settlements, %s members",
        group_id, len(expenses), len(settlements), len(members),
    )
    return expenses, settlements, members


async def load_group_ledger(db: AsyncSession, group_id: int):
    expenses, settlements, members = await _load_group_rows(db, group_id)

    return (
        [LedgerExpense.model_validate(e) for e in expenses],
        [LedgerSettlement.model_validate(s) for s in settlements],
        [m.user_id for m in members],
    )


async def get_group_balances(db: AsyncSession, group_id: int) -> GroupBalanceOut:
    expenses, settlements, member_ids = await load_group_ledger(db, group_id)

    balances = compute_balances(expenses, settlements, member_ids=member_ids)
    transfers = suggest_settlements(balances)

    return GroupBalanceOut(
        balances=[BalanceOut(user_id=uid, balance=bal) for uid, bal in balances],
        settlements=[
            SettlementSuggestion(from_id=f, to_id=t, amount=a)
            for f, t, a in transfers
        ],
    )


async def get_pairwise_balances(db: AsyncSession, group_id: int, user_id: int):
    expenses, settlements, _ = await load_group_ledger(db, group_id)

    return [
        PairwiseBalanceOut(user_id=uid, balance=bal)
        for uid, bal in pairwise_balances(user_id, expenses, settlements)
    ]


async def export_group_data(db: AsyncSession, group_id: int, user_id: int) -> GroupExportOut:
    """Everything stored for a group plus its current balances, in one document.

    Only members may export. Balances are derived from the same rows that
    are exported, so the document is self-consistent.
    """
    group = await get_group_or_404(db, group_id)
    await check_group_membership(db, group_id, user_id)

    expenses, settlements, members = await _load_group_rows(db, group_id)

    balances = compute_balances(
        [LedgerExpense.model_validate(e) for e in expenses],
        [LedgerSettlement.model_validate(s) for s in settlements],
        member_ids=[m.user_id for m in members],
    )

    logger.info("Exported group %s for user %s", group_id, user_id)

    return GroupExportOut(
        group=GroupOut.model_validate(group),
        members=[MemberOut.model_validate(m) for m in members],
        expenses=[ExpenseOut.model_validate(e) for e in expenses],
        settlements=[SettlementOut.model_validate(s) for s in settlements],
        balances=[BalanceOut(user_id=uid, balance=bal) for uid, bal in balances],
        exported_at=datetime.now(timezone.utc),
        exported_by=user_id,
    )
