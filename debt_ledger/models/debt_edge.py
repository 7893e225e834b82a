from sqlalchemy import Column, Integer, String, Numeric, DateTime, CheckConstraint, UniqueConstraint
from sqlalchemy.sql import func
from debt_ledger.db.session import Base

class DebtEdge(Base):
    """``from_user`` owes ``to_user`` ``amount`` within ``group_id``."""

    __tablename__ = "debt_edges"

    id = Column(Integer, primary_key=True)
    group_id = Column(String, nullable=False, index=True)
    from_user = Column(String, nullable=False)
    to_user = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("group_id", "from_user", "to_user", name="uq_debt_edge_pair"),
        CheckConstraint("from_user <> to_user", name="ck_debt_edge_no_self_loop"),
    )
