"""Read-only views of the stored ledger handed to the balance engine."""
from pydantic import BaseModel
from typing import List


class LedgerPayment(BaseModel):
    user_id: int
    amount: int

    class Config:
        from_attributes = True


class LedgerSplit(BaseModel):
    user_id: int
    amount: int
    is_paid: bool = False

    class Config:
        from_attributes = True


class LedgerExpense(BaseModel):
    id: int
    amount: int
    payments: List[LedgerPayment] = []
    splits: List[LedgerSplit] = []

    class Config:
        from_attributes = True


class LedgerSettlement(BaseModel):
    from_user: int
    to_user: int
    amount: int

    class Config:
        from_attributes = True
