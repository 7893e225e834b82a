from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Dict, List, Tuple

getcontext().prec = 28
CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def qround(d) -> Decimal:
    if not isinstance(d, Decimal):
        d = Decimal(str(d))
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_cents(value) -> Decimal:
    """Exact cents, or ``ValueError``; fractions of a cent are never rounded away."""
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
        cents = d.quantize(CENTS)
    except InvalidOperation:
        raise ValueError(f"{value!r} is not an amount of money") from None

    if not d.is_finite() or cents != d:
        raise ValueError(f"{value!r} has more than 2 decimal places")
    return cents


def simplify_debts(net_map: Dict[str, Decimal]) -> List[Tuple[str, str, Decimal]]:
    """
    Payment plan that brings every balance in ``net_map`` to zero.

    The biggest debtor pays the biggest creditor until one of them is even,
    then the next in line steps in. Returns ``(payer, payee, amount)``
    triples, at most N-1 of them. Balances must add up to zero.
    """
    payees = [[uid, bal] for uid, bal in net_map.items() if bal > ZERO]
    payers = [[uid, -bal] for uid, bal in net_map.items() if bal < ZERO]

    # biggest first, user id breaks ties so the plan is stable between calls
    payees.sort(key=lambda p: (-p[1], p[0]))
    payers.sort(key=lambda p: (-p[1], p[0]))

    plan: List[Tuple[str, str, Decimal]] = []
    i = j = 0

    while i < len(payers) and j < len(payees):
        payer, payee = payers[i], payees[j]
        amount = min(payer[1], payee[1])

        plan.append((payer[0], payee[0], amount))
        payer[1] -= amount
        payee[1] -= amount

        if payer[1] == ZERO:
            i += 1
        if payee[1] == ZERO:
            j += 1

    return plan
