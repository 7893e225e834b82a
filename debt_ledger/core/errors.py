class LedgerError(Exception):
    """Base class for every failure raised by the settlement core."""


class InvalidAllocationError(LedgerError):
    """Lender and borrower lists do not describe a valid expense.

    Raised before anything touches the debt graph, so the expense can simply
    be rejected.
    """


class ExhaustedLendersError(LedgerError):
    """The lender stack ran dry while a borrower still owed money."""


class NegativeBalanceError(LedgerError):
    """An edge update would leave a negative weight on a debt edge."""

    def __init__(self, group_id, borrower_id, lender_id, amount):
        self.group_id = group_id
        self.borrower_id = borrower_id
        self.lender_id = lender_id
        self.amount = amount
        super().__init__(
            f"Edge {borrower_id} -> {lender_id} in group {group_id} "
            f"would drop to {amount}"
        )


class StorageError(LedgerError):
    """The backing store failed; the batch can be retried as is."""


class SettlementTimeoutError(StorageError):
    """A settlement did not finish in time and was rolled back."""
