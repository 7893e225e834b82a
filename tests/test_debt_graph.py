from collections import defaultdict
from decimal import Decimal

import pytest
from sqlalchemy import select

from debt_ledger.core.errors import NegativeBalanceError, StorageError
from debt_ledger.models.debt_edge import DebtEdge
from debt_ledger.services import debt_graph
from debt_ledger.services.debt_graph import (
    apply_transfer,
    balances_settled,
    group_balances,
    is_group_settled,
    list_edges,
    net_balance,
)

from .conftest import edge_map


async def test_first_transfer_creates_the_edge(db, session_factory):
    weight = await apply_transfer(db, "g1", "bob", "alice", Decimal("12.50"))
    await db.commit()

    assert weight == Decimal("12.50")
    assert await edge_map(session_factory, "g1") == {("bob", "alice"): Decimal("12.50")}


async def test_transfers_in_the_same_direction_accumulate(db, session_factory):
    await apply_transfer(db, "g1", "bob", "alice", "10")
    await apply_transfer(db, "g1", "bob", "alice", "0.10")
    await apply_transfer(db, "g1", "bob", "alice", "0.20")
    await db.commit()

    assert await edge_map(session_factory, "g1") == {("bob", "alice"): Decimal("10.30")}


async def test_edge_is_removed_when_it_reaches_zero(db, session_factory):
    await apply_transfer(db, "g1", "bob", "alice", "40.10")
    weight = await apply_transfer(db, "g1", "bob", "alice", "-40.10")
    await db.commit()

    assert weight == 0
    assert await edge_map(session_factory, "g1") == {}


async def test_opposite_directions_are_separate_edges(db, session_factory):
    await apply_transfer(db, "g1", "bob", "alice", "30")
    await apply_transfer(db, "g1", "alice", "bob", "10")
    await db.commit()

    assert await edge_map(session_factory, "g1") == {
        ("bob", "alice"): Decimal("30"),
        ("alice", "bob"): Decimal("10"),
    }


async def test_overdrawing_an_edge_raises_and_rolls_back(db, session_factory):
    await apply_transfer(db, "g1", "bob", "alice", "10")
    await db.commit()

    with pytest.raises(NegativeBalanceError) as info:
        await apply_transfer(db, "g1", "bob", "alice", "-20")
    await db.rollback()

    assert info.value.amount == Decimal("-10")
    assert await edge_map(session_factory, "g1") == {("bob", "alice"): Decimal("10")}


async def test_decrementing_a_missing_edge_raises(db, session_factory):
    with pytest.raises(NegativeBalanceError):
        await apply_transfer(db, "g1", "bob", "alice", "-5")
    await db.rollback()

    assert await edge_map(session_factory, "g1") == {}


async def test_self_transfer_is_ignored(db, session_factory):
    weight = await apply_transfer(db, "g1", "alice", "alice", "25")
    await db.commit()

    assert weight == 0
    assert await edge_map(session_factory, "g1") == {}


async def test_groups_do_not_share_edges(db):
    await apply_transfer(db, "g1", "bob", "alice", "10")
    await apply_transfer(db, "g2", "bob", "alice", "99")
    await db.commit()

    assert await net_balance(db, "g1", "alice") == Decimal("10")
    assert await net_balance(db, "g2", "alice") == Decimal("99")


class TestBalances:

    @pytest.fixture
    async def graph(self, db):
        for borrower, lender, amount in [
            ("carol", "alice", "30"),
            ("carol", "bob", "40"),
            ("dave", "alice", "30"),
            ("alice", "dave", "5.25"),
        ]:
            await apply_transfer(db, "g1", borrower, lender, amount)
        await db.commit()
        return db

    async def test_net_balance_is_incoming_minus_outgoing(self, graph):
        assert await net_balance(graph, "g1", "alice") == Decimal("54.75")
        assert await net_balance(graph, "g1", "carol") == Decimal("-70")
        assert await net_balance(graph, "g1", "dave") == Decimal("-24.75")

    async def test_unknown_user_has_zero_balance(self, graph):
        assert await net_balance(graph, "g1", "mallory") == Decimal("0")
        assert await net_balance(graph, "other", "alice") == Decimal("0")

    async def test_group_balances_match_edge_recomputation(self, graph):
        expected = defaultdict(Decimal)
        for edge in await list_edges(graph, "g1"):
            expected[edge.to_user] += Decimal(edge.amount)
            expected[edge.from_user] -= Decimal(edge.amount)

        balances = await group_balances(graph, "g1")

        assert balances == dict(expected)
        assert sum(balances.values()) == 0
        for user_id, amount in balances.items():
            assert await net_balance(graph, "g1", user_id) == amount

    async def test_edges_can_be_filtered_by_user(self, graph):
        edges = await list_edges(graph, "g1", user_id="dave")

        assert [(e.from_user, e.to_user) for e in edges] == [
            ("alice", "dave"),
            ("dave", "alice"),
        ]

    async def test_group_with_debts_is_not_settled(self, graph):
        assert not await is_group_settled(graph, "g1")
        assert await is_group_settled(graph, "empty")


async def test_a_single_cent_owed_is_not_settled(db):
    await apply_transfer(db, "g1", "bob", "alice", "0.01")
    await db.commit()

    assert not await is_group_settled(db, "g1")


async def test_debts_that_cancel_out_are_settled(db):
    await apply_transfer(db, "g1", "bob", "alice", "15")
    await apply_transfer(db, "g1", "alice", "bob", "15")
    await db.commit()

    assert await is_group_settled(db, "g1")
    assert balances_settled(await group_balances(db, "g1"))


async def test_unknown_dialect_is_a_storage_error(db, monkeypatch):
    monkeypatch.delitem(debt_graph._UPSERTS, "sqlite")

    with pytest.raises(StorageError):
        await apply_transfer(db, "g1", "bob", "alice", "10")


async def test_no_non_positive_edges_are_stored(db):
    steps = [("b", "a", "10"), ("c", "a", "5"), ("b", "a", "-10"), ("c", "a", "-2.5")]
    for borrower, lender, amount in steps:
        await apply_transfer(db, "g1", borrower, lender, amount)
    await db.commit()

    res = await db.execute(select(DebtEdge.amount).where(DebtEdge.group_id == "g1"))
    amounts = [Decimal(a) for a in res.scalars()]

    assert amounts == [Decimal("2.5")]
