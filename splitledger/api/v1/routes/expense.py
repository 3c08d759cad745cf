from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from splitledger.db.session import get_db
from splitledger.schemas.expense import ExpenseCreate, ExpenseOut
from splitledger.services.expense_services import create_expense, delete_expense, get_expense_by_id
from splitledger.core.dependencies import get_current_user

router = APIRouter()

@router.post("/", response_model=ExpenseOut, status_code=201)
async def add_expense(data: ExpenseCreate, db: AsyncSession = Depends(get_db), current_user: int = Depends(get_current_user)):
    return await create_expense(db, data, current_user)

@router.get("/{expense_id}", response_model=ExpenseOut)
async def fetch(
    expense_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: int = Depends(get_current_user),
):
    return await get_expense_by_id(db, expense_id=expense_id, user_id=current_user)

@router.delete("/{expense_id}")
async def del_expense(expense_id: int, db:AsyncSession = Depends(get_db), current_user: int = Depends(get_current_user)):
    return await delete_expense(db, expense_id=expense_id, user_id=current_user)
