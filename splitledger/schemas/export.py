from datetime import datetime
from typing import List
from pydantic import BaseModel
from splitledger.schemas.balances import BalanceOut
from splitledger.schemas.expense import ExpenseOut
from splitledger.schemas.settlements import SettlementOut


class GroupOut(BaseModel):
    id: int
    name: str
    currency: str
    created_by: int
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class MemberOut(BaseModel):
    user_id: int
    role: str

    class Config:
        from_attributes = True


class GroupExportOut(BaseModel):
    group: GroupOut
    members: List[MemberOut]
    expenses: List[ExpenseOut]
    settlements: List[SettlementOut]
    balances: List[BalanceOut]
    exported_at: datetime
    exported_by: int
