from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from debt_ledger.db.session import get_db
from debt_ledger.schemas.balances import DebtEdgeOut, GroupBalanceOut, NetBalance
from debt_ledger.services.debt_graph import balances_settled, group_balances, list_edges, net_balance

router = APIRouter()


@router.get("/{group_id}/balances", response_model=GroupBalanceOut)
async def all_balances(group_id: str, db: AsyncSession = Depends(get_db)):
    net = await group_balances(db, group_id)
    # from the same read as "net", never a second query
    settled = balances_settled(net)
    return {"group_id": group_id, "net": net, "settled": settled}


@router.get("/{group_id}/balances/{user_id}", response_model=NetBalance)
async def user_balance(group_id: str, user_id: str, db: AsyncSession = Depends(get_db)):
    balance = await net_balance(db, group_id, user_id)
    return {"group_id": group_id, "user_id": user_id, "balance": balance}


@router.get("/{group_id}/edges", response_model=List[DebtEdgeOut])
async def edges(group_id: str, user_id: str | None = None, db: AsyncSession = Depends(get_db)):
    return await list_edges(db, group_id, user_id)
