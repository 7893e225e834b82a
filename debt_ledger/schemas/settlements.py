from pydantic import BaseModel, Field
from debt_ledger.schemas.ledger import Money

class PaymentCreate(BaseModel):
    from_user: str
    to_user: str
    amount: Money = Field(gt=0)

class PaymentOut(BaseModel):
    group_id: str
    from_user: str
    to_user: str
    amount: Money
    remaining: Money

class SuggestedPayment(BaseModel):
    from_user: str
    to_user: str
    amount: Money
