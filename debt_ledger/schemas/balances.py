from datetime import datetime
from pydantic import BaseModel
from debt_ledger.schemas.ledger import Money

class NetBalance(BaseModel):
    group_id: str
    user_id: str
    balance: Money

class GroupBalanceOut(BaseModel):
    group_id: str
    net: dict[str, Money]
    settled: bool

class DebtEdgeOut(BaseModel):
    from_user: str
    to_user: str
    amount: Money
    updated_at: datetime | None = None

    class Config:
        from_attributes = True
