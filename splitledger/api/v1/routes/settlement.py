from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from splitledger.db.session import get_db
from splitledger.core.dependencies import get_current_user
from splitledger.schemas.settlements import UserSettlementOut
from splitledger.services.settlement_services import get_user_settlements

router = APIRouter()

@router.get("/mine", response_model=list[UserSettlementOut])
async def my_settlements(db: AsyncSession = Depends(get_db), current_user: int = Depends(get_current_user)):
    return await get_user_settlements(db, current_user)
