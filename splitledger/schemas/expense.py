from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field
from typing import List


class SplitType(str, Enum):
    EQUAL = "equal"
    EXACT = "exact"
    PERCENTAGE = "percentage"


class SplitInput(BaseModel):
    user_id: int
    # exact amount in minor units, or a percentage (0-100); unused for equal splits
    value: float | None = None


class PayerInput(BaseModel):
    user_id: int
    amount: int


class ExpenseCreate(BaseModel):
    group_id : int
    description : str = Field(min_length=1)
    amount : int
    currency : str | None = None
    paid_by : int | None = None
    category : str | None = None
    notes : str | None = None
    date : datetime | None = None
    split_type : SplitType = SplitType.EQUAL
    splits: List[SplitInput]
    paid_by_multiple: List[PayerInput] = []


class PaymentOut(BaseModel):
    user_id: int
    amount: int

    class Config:
        from_attributes = True


class SplitOut(BaseModel):
    user_id: int
    amount: int
    is_paid: bool

    class Config:
        from_attributes = True


class ExpenseOut(BaseModel):
    id: int
    group_id: int
    description: str
    amount: int
    currency: str
    paid_by: int
    created_by: int
    category: str | None = None
    notes: str | None = None
    date: datetime | None = None
    payments: List[PaymentOut]
    splits : List[SplitOut]

    class Config:
        from_attributes = True
