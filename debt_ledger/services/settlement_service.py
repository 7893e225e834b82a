import asyncio
import logging
from decimal import Decimal
from typing import List, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from debt_ledger.core.config import settings
from debt_ledger.core.errors import InvalidAllocationError, SettlementTimeoutError, StorageError
from debt_ledger.core.locks import group_lock, lock_group_rows
from debt_ledger.core.utils import ZERO, simplify_debts, to_cents
from debt_ledger.schemas.ledger import Transfer
from debt_ledger.schemas.settlements import SuggestedPayment
from debt_ledger.services.allocator import allocate
from debt_ledger.services.debt_graph import apply_transfer, group_balances

logger = logging.getLogger(__name__)

# (borrower_id, lender_id, signed amount)
Step = Tuple[str, str, Decimal]


def _forward(transfers: Sequence[Transfer]) -> List[Step]:
    return [(t.borrower_id, t.lender_id, t.amount) for t in transfers]


def _undo(inverse: Sequence[Transfer]) -> List[Step]:
    # inverse transfers point lender -> borrower; undo the original edge instead
    return [(t.lender_id, t.borrower_id, -t.amount) for t in inverse]


async def _write_batch(
    db: AsyncSession,
    group_id: str,
    steps: Sequence[Step],
    timeout: float | None,
) -> List[Decimal]:
    """
    Apply ``steps`` to the group's edges in one transaction.

    Holds the group's lock for the whole batch. Either every step is
    committed or the session is rolled back; the deadline covers waiting
    for the lock and applying the steps, never the commit itself.
    """
    timeout = settings.SETTLEMENT_TIMEOUT if timeout is None else timeout
    deadline = asyncio.get_running_loop().time() + timeout
    lock = group_lock(group_id)

    try:
        async with asyncio.timeout_at(deadline):
            await lock.acquire()
    except TimeoutError:
        logger.warning("Timed out waiting for group %s", group_id)
        raise SettlementTimeoutError(f"Group {group_id} is busy, try again") from None

    try:
        async with asyncio.timeout_at(deadline):
            await lock_group_rows(db, group_id)
            weights = [
                await apply_transfer(db, group_id, borrower, lender, amount)
                for borrower, lender, amount in steps
            ]
        await db.commit()
        return weights

    except TimeoutError:
        await db.rollback()
        logger.warning("Settlement in group %s timed out after %ss, rolled back", group_id, timeout)
        raise SettlementTimeoutError(
            f"Settlement in group {group_id} did not finish within {timeout}s"
        ) from None

    except SQLAlchemyError as e:
        await db.rollback()
        logger.warning("Storage failure in group %s: %s", group_id, e)
        raise StorageError(f"Could not update debts in group {group_id}") from e

    except BaseException:
        await db.rollback()
        raise

    finally:
        lock.release()


async def settle(
    db: AsyncSession,
    group_id: str,
    lender_list: Sequence,
    borrowing_list: Sequence,
    timeout: float | None = None,
) -> List[Transfer]:
    transfers = allocate(lender_list, borrowing_list, group_id)

    await _write_batch(db, group_id, _forward(transfers), timeout)

    logger.info("Settled %d transfers in group %s", len(transfers), group_id)
    return transfers


async def reverse(
    db: AsyncSession,
    group_id: str,
    lender_list: Sequence,
    borrowing_list: Sequence,
    timeout: float | None = None,
) -> List[Transfer]:
    """
    Undo an earlier ``settle`` of the same lists, e.g. when the expense is deleted.

    Returns the inverse transfers (original lenders paying back borrowers).
    """
    inverse = allocate(borrowing_list, lender_list, group_id)

    await _write_batch(db, group_id, _undo(inverse), timeout)

    logger.info("Reversed %d transfers in group %s", len(inverse), group_id)
    return inverse


async def resettle(
    db: AsyncSession,
    group_id: str,
    old_lenders: Sequence,
    old_borrowers: Sequence,
    new_lenders: Sequence,
    new_borrowers: Sequence,
    timeout: float | None = None,
) -> List[Transfer]:
    """Swap an expense's old split for a new one in a single transaction."""
    inverse = allocate(old_borrowers, old_lenders, group_id)
    transfers = allocate(new_lenders, new_borrowers, group_id)

    await _write_batch(db, group_id, _undo(inverse) + _forward(transfers), timeout)

    logger.info(
        "Resettled group %s: %d transfers undone, %d applied",
        group_id, len(inverse), len(transfers),
    )
    return transfers


async def record_payment(
    db: AsyncSession,
    group_id: str,
    from_user: str,
    to_user: str,
    amount,
    timeout: float | None = None,
) -> Decimal:
    """
    ``from_user`` pays back part of what they owe ``to_user``.

    Returns what is still owed on that edge. Paying more than is owed raises
    ``NegativeBalanceError`` and changes nothing.
    """
    try:
        amount = to_cents(amount)
    except ValueError as e:
        raise InvalidAllocationError(str(e)) from None

    if amount <= ZERO:
        raise InvalidAllocationError("Payment amount must be positive")
    if from_user == to_user:
        raise InvalidAllocationError("Cannot pay yourself")

    (remaining,) = await _write_batch(db, group_id, [(from_user, to_user, -amount)], timeout)

    logger.info("Recorded payment of %s from %s to %s in group %s", amount, from_user, to_user, group_id)
    return remaining


async def suggest_payments(db: AsyncSession, group_id: str) -> List[SuggestedPayment]:
    net = await group_balances(db, group_id)

    return [
        SuggestedPayment(from_user=debtor, to_user=creditor, amount=amount)
        for debtor, creditor, amount in simplify_debts(net)
    ]
