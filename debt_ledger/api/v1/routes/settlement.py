from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from debt_ledger.db.session import get_db
from debt_ledger.schemas.ledger import ResettleCreate, SettlementCreate, SettlementOut
from debt_ledger.schemas.settlements import PaymentCreate, PaymentOut, SuggestedPayment
from debt_ledger.services.settlement_service import (
    settle,
    reverse,
    resettle,
    record_payment,
    suggest_payments,
)

router = APIRouter()


@router.post("/{group_id}/settle", response_model=SettlementOut, status_code=201)
async def settle_expense(group_id: str, data: SettlementCreate, db: AsyncSession = Depends(get_db)):
    transfers = await settle(db, group_id, data.lender_list, data.borrowing_list)
    return {"group_id": group_id, "transfers": transfers}


@router.post("/{group_id}/reverse", response_model=SettlementOut)
async def reverse_expense(group_id: str, data: SettlementCreate, db: AsyncSession = Depends(get_db)):
    transfers = await reverse(db, group_id, data.lender_list, data.borrowing_list)
    return {"group_id": group_id, "transfers": transfers}


@router.put("/{group_id}/resettle", response_model=SettlementOut)
async def resettle_expense(group_id: str, data: ResettleCreate, db: AsyncSession = Depends(get_db)):
    transfers = await resettle(
        db,
        group_id,
        data.old.lender_list,
        data.old.borrowing_list,
        data.new.lender_list,
        data.new.borrowing_list,
    )
    return {"group_id": group_id, "transfers": transfers}


@router.post("/{group_id}/payments", response_model=PaymentOut, status_code=201)
async def add_payment(group_id: str, data: PaymentCreate, db: AsyncSession = Depends(get_db)):
    remaining = await record_payment(db, group_id, data.from_user, data.to_user, data.amount)
    return {
        "group_id": group_id,
        "from_user": data.from_user,
        "to_user": data.to_user,
        "amount": data.amount,
        "remaining": remaining,
    }


@router.get("/{group_id}/suggested-payments", response_model=List[SuggestedPayment])
async def suggested_payments(group_id: str, db: AsyncSession = Depends(get_db)):
    return await suggest_payments(db, group_id)
