"""
Splits one expense into pairwise debts.

Lenders are consumed from the end of their list (stack order) and borrowers
from the front (queue order). Each step moves as much as the current pair
allows, so every borrower is paid off by a run of adjacent lenders and the
number of transfers stays at most ``len(lenders) + len(borrowers) - 1``.

Because the two lists are walked from opposite ends, running the sweep on
the swapped lists pairs up exactly the same people for the same amounts.
``settlement_service.reverse`` relies on that to undo an expense.
"""
from decimal import Decimal
from typing import Iterable, List, Sequence, Tuple

from pydantic import ValidationError

from debt_ledger.core.errors import ExhaustedLendersError, InvalidAllocationError
from debt_ledger.core.utils import ZERO
from debt_ledger.schemas.ledger import LedgerEntry, Transfer


def _entries(items: Iterable) -> Tuple[LedgerEntry, ...]:
    try:
        return tuple(
            item if isinstance(item, LedgerEntry) else LedgerEntry.model_validate(item)
            for item in items
        )
    except ValidationError as e:
        raise InvalidAllocationError(f"Invalid ledger entry: {e}") from e


def check_valid_expense(lender_list: Sequence, borrowing_list: Sequence):
    """
    Reject a split that cannot be settled.

    Both sides must be non-empty, no share may be negative and the two sides
    must add up to the same positive total.
    """
    lenders = _entries(lender_list)
    borrowers = _entries(borrowing_list)

    if not lenders or not borrowers:
        raise InvalidAllocationError("Lender and borrower lists must not be empty")

    if any(e.amount < ZERO for e in lenders + borrowers):
        raise InvalidAllocationError("Shares must not be negative")

    lent = sum((e.amount for e in lenders), ZERO)
    owed = sum((e.amount for e in borrowers), ZERO)

    if lent != owed:
        raise InvalidAllocationError(
            f"Lent total ({lent}) must equal borrowed total ({owed})"
        )
    if lent == ZERO:
        raise InvalidAllocationError("Expense total must be positive")

    return lenders, borrowers


def _sweep(
    lenders: Sequence[LedgerEntry],
    borrowers: Sequence[LedgerEntry],
    group_id: str | None = None,
) -> List[Transfer]:
    transfers: List[Transfer] = []

    cursor = len(lenders)
    lender_id, left = None, ZERO

    for borrower in borrowers:
        owed: Decimal = borrower.amount

        while owed != ZERO:
            while left == ZERO:
                cursor -= 1
                if cursor < 0:
                    raise ExhaustedLendersError(
                        f"No lender left to cover {owed} owed by {borrower.user_id}"
                    )
                lender_id, left = lenders[cursor].user_id, lenders[cursor].amount

            if left < owed:
                moved = left
            else:
                # equal amounts land here: the borrower is the one exhausted
                moved = owed

            transfers.append(Transfer(
                borrower_id=borrower.user_id,
                lender_id=lender_id,
                amount=moved,
                group_id=group_id,
            ))
            owed -= moved
            left -= moved

    return transfers


def allocate(
    lender_list: Sequence,
    borrowing_list: Sequence,
    group_id: str | None = None,
) -> List[Transfer]:
    """
    Compute the transfers that reproduce an expense's funding.

    Entries may be ``LedgerEntry`` objects or anything ``LedgerEntry`` can
    validate (e.g. ``{"user_id": "a", "amount": "12.50"}``). The inputs are
    left untouched.

    Raises ``InvalidAllocationError`` when the split is not balanced.
    """
    lenders, borrowers = check_valid_expense(lender_list, borrowing_list)
    return _sweep(lenders, borrowers, group_id)
