import logging
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import case, delete, func, or_, select, union_all
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from debt_ledger.core.errors import NegativeBalanceError, StorageError
from debt_ledger.core.utils import ZERO, qround
from debt_ledger.models.debt_edge import DebtEdge

logger = logging.getLogger(__name__)

_UPSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _upsert_for(db: AsyncSession):
    dialect = db.get_bind().dialect.name
    try:
        return _UPSERTS[dialect]
    except KeyError:
        raise StorageError(f"Debt edges cannot be stored on {dialect!r}") from None


async def apply_transfer(
    db: AsyncSession,
    group_id: str,
    borrower_id: str,
    lender_id: str,
    amount,
) -> Decimal:
    """
    Add ``amount`` to the ``borrower -> lender`` edge and return its new weight.

    A negative ``amount`` decrements the edge. An edge that lands on zero is
    deleted. Landing below zero raises ``NegativeBalanceError``; the bad
    write is still pending in ``db`` and the caller must roll back.

    Nothing is committed here.
    """
    amount = qround(amount)

    if borrower_id == lender_id:
        logger.debug("Skipping self transfer of %s for %s in group %s", amount, borrower_id, group_id)
        return ZERO

    insert = _upsert_for(db)
    stmt = insert(DebtEdge).values(
        group_id=group_id,
        from_user=borrower_id,
        to_user=lender_id,
        amount=amount,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[DebtEdge.group_id, DebtEdge.from_user, DebtEdge.to_user],
        set_={
            "amount": DebtEdge.amount + stmt.excluded.amount,
            "updated_at": func.now(),
        },
    ).returning(DebtEdge.id, DebtEdge.amount)

    row = (await db.execute(stmt)).one()
    new_amount = qround(row.amount)

    if new_amount < ZERO:
        logger.error(
            "Edge %s -> %s in group %s would drop to %s",
            borrower_id, lender_id, group_id, new_amount,
        )
        raise NegativeBalanceError(group_id, borrower_id, lender_id, new_amount)

    if new_amount == ZERO:
        await db.execute(delete(DebtEdge).where(DebtEdge.id == row.id))
        logger.debug("Removed edge %s -> %s in group %s", borrower_id, lender_id, group_id)
    else:
        logger.debug(
            "Edge %s -> %s in group %s now %s",
            borrower_id, lender_id, group_id, new_amount,
        )

    return new_amount


async def net_balance(db: AsyncSession, group_id: str, user_id: str) -> Decimal:
    """
    What the group owes ``user_id``: incoming weights minus outgoing weights.

    Runs as a single statement so it never sees half of a settlement.
    """
    signed = case(
        (DebtEdge.to_user == user_id, DebtEdge.amount),
        else_=-DebtEdge.amount,
    )
    q = (
        select(func.coalesce(func.sum(signed), 0))
        .where(
            DebtEdge.group_id == group_id,
            or_(DebtEdge.to_user == user_id, DebtEdge.from_user == user_id),
        )
    )

    res = await db.execute(q)
    return qround(res.scalar())


async def group_balances(db: AsyncSession, group_id: str) -> Dict[str, Decimal]:
    """
    Returns:
        {
            user_id: net_balance (Decimal)
        }

    for every user with at least one edge in the group.
    """
    credits = select(
        DebtEdge.to_user.label("user_id"),
        DebtEdge.amount.label("amount"),
    ).where(DebtEdge.group_id == group_id)

    debits = select(
        DebtEdge.from_user.label("user_id"),
        (-DebtEdge.amount).label("amount"),
    ).where(DebtEdge.group_id == group_id)

    legs = union_all(credits, debits).subquery()

    q = (
        select(legs.c.user_id, func.sum(legs.c.amount).label("net"))
        .group_by(legs.c.user_id)
        .order_by(legs.c.user_id)
    )

    res = await db.execute(q)
    return {row.user_id: qround(row.net) for row in res}


async def list_edges(db: AsyncSession, group_id: str, user_id: str | None = None) -> List[DebtEdge]:
    q = select(DebtEdge).where(DebtEdge.group_id == group_id)

    if user_id is not None:
        q = q.where(or_(DebtEdge.from_user == user_id, DebtEdge.to_user == user_id))

    q = (
        q.order_by(DebtEdge.from_user, DebtEdge.to_user)
        # upserts bypass the identity map, so reload whatever it holds
        .execution_options(populate_existing=True)
    )

    res = await db.execute(q)
    return res.scalars().all()


def balances_settled(net: Dict[str, Decimal]) -> bool:
    """True when nobody in ``net`` is owed or owes anything."""
    return all(amount == ZERO for amount in net.values())


async def is_group_settled(db: AsyncSession, group_id: str) -> bool:
    return balances_settled(await group_balances(db, group_id))
