from pydantic import BaseModel


class BalanceOut(BaseModel):
    user_id: int
    balance: int


class SettlementSuggestion(BaseModel):
    from_id: int
    to_id: int
    amount: int


class GroupBalanceOut(BaseModel):
    balances: list[BalanceOut]
    settlements: list[SettlementSuggestion]


class PairwiseBalanceOut(BaseModel):
    # positive: they owe the requesting user, negative: the user owes them
    user_id: int
    balance: int
