from datetime import datetime
from typing import Literal
from pydantic import BaseModel


class SettlementCreate(BaseModel):
    from_user: int
    to_user: int
    amount: int
    currency: str | None = None
    notes: str | None = None
    date: datetime | None = None


class SettlementOut(BaseModel):
    id: int
    group_id: int
    from_user: int
    to_user: int
    amount: int
    currency: str
    notes: str | None = None
    date: datetime | None = None

    class Config:
        from_attributes = True


class UserSettlementOut(SettlementOut):
    type: Literal["paid", "received"]
