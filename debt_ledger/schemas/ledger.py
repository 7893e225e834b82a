from decimal import Decimal
from typing import Annotated, List

from pydantic import BaseModel, ConfigDict, PlainSerializer, field_validator

from debt_ledger.core.utils import to_cents

# exact Decimal in Python, a plain number in JSON
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class LedgerEntry(BaseModel):
    """One party's share of an expense, as lender or as borrower."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    amount: Money

    @field_validator("amount")
    @classmethod
    def whole_cents(cls, v: Decimal) -> Decimal:
        return to_cents(v)


class Transfer(BaseModel):
    model_config = ConfigDict(frozen=True)

    borrower_id: str
    lender_id: str
    amount: Money
    group_id: str | None = None


class SettlementCreate(BaseModel):
    lender_list: List[LedgerEntry]
    borrowing_list: List[LedgerEntry]


class ResettleCreate(BaseModel):
    old: SettlementCreate
    new: SettlementCreate


class SettlementOut(BaseModel):
    group_id: str
    transfers: List[Transfer]
