from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from splitledger.db.session import get_db
from splitledger.core.dependencies import get_current_user, check_group_membership
from splitledger.schemas.balances import GroupBalanceOut, PairwiseBalanceOut
from splitledger.schemas.expense import ExpenseOut
from splitledger.schemas.export import GroupExportOut
from splitledger.schemas.settlements import SettlementCreate, SettlementOut
from splitledger.services.balance_services import export_group_data, get_group_balances, get_pairwise_balances
from splitledger.services.expense_services import get_group_expenses
from splitledger.services.settlement_services import add_settlement, delete_settlement, get_group_settlements

router = APIRouter()

@router.get("/{group_id}/expenses", response_model=list[ExpenseOut], description="get all expenses of the group")
async def fetch_expenses(group_id: int, db: AsyncSession = Depends(get_db), current_user: int = Depends(get_current_user)):
    await check_group_membership(db, group_id, current_user)
    return await get_group_expenses(db, group_id)

@router.get("/{group_id}/balances", response_model=GroupBalanceOut)
async def group_balances(group_id: int, db: AsyncSession = Depends(get_db), current_user: int = Depends(get_current_user)):
    await check_group_membership(db, group_id, current_user)
    return await get_group_balances(db, group_id=group_id)

@router.get("/{group_id}/balances/pairwise", response_model=list[PairwiseBalanceOut])
async def pairwise(group_id: int, db: AsyncSession = Depends(get_db), current_user: int = Depends(get_current_user)):
    await check_group_membership(db, group_id, current_user)
    return await get_pairwise_balances(db, group_id=group_id, user_id=current_user)

@router.get("/{group_id}/settlements", response_model=list[SettlementOut])
async def fetch_settlements(group_id: int, db: AsyncSession = Depends(get_db), current_user: int = Depends(get_current_user)):
    await check_group_membership(db, group_id, current_user)
    return await get_group_settlements(db, group_id)

@router.post("/{group_id}/settlements", response_model=SettlementOut, status_code=201)
async def record_settlement(
    group_id: int,
    data: SettlementCreate,
    db: AsyncSession = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    return await add_settlement(db, group_id, data, current_user)

@router.delete("/{group_id}/settlements/{settlement_id}")
async def remove_settlement(
    group_id: int,
    settlement_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: int = Depends(get_current_user)
):
    return await delete_settlement(db, group_id, settlement_id, current_user)

@router.get("/{group_id}/export", response_model=GroupExportOut, description="export the group's ledger and balances")
async def export_group(group_id: int, db: AsyncSession = Depends(get_db), current_user: int = Depends(get_current_user)):
    return await export_group_data(db, group_id, current_user)
