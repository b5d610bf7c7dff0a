"""Unit tests for atomic execution and share ledgers."""

import pytest

from src.core.errors import (
    InsufficientAllowanceError,
    InsufficientCollateralError,
    ReentrantCallError,
)
from src.engine import ShareLedger, TransactionManager


class Counter:
    """Minimal transaction participant."""

    def __init__(self):
        self.value = 0

    def checkpoint(self):
        return self.value

    def restore(self, snapshot):
        self.value = snapshot


class TestTransactionManager:
    """Tests for checkpoint / restore."""

    def test_commit(self):
        manager = TransactionManager()
        counter = Counter()
        manager.register(counter)

        with manager.atomic():
            counter.value = 5

        assert counter.value == 5
        assert not manager.in_transaction

    def test_rollback_on_error(self):
        manager = TransactionManager()
        counter = Counter()
        manager.register(counter)

        with pytest.raises(ValueError):
            with manager.atomic():
                counter.value = 5
                raise ValueError("boom")

        assert counter.value == 0

    def test_nested_failure_rolls_back_outer(self):
        manager = TransactionManager()
        counter = Counter()
        manager.register(counter)

        with pytest.raises(ValueError):
            with manager.atomic():
                counter.value = 1
                with manager.atomic():
                    counter.value = 2
                    raise ValueError("inner")

        assert counter.value == 0

    def test_caught_inner_failure_keeps_outer_state(self):
        manager = TransactionManager()
        counter = Counter()
        manager.register(counter)

        with manager.atomic():
            counter.value = 1
            try:
                with manager.atomic():
                    counter.value = 2
                    raise ValueError("inner")
            except ValueError:
                pass

        # Only the outermost transaction restores
        assert counter.value == 2

    def test_register_is_idempotent(self):
        manager = TransactionManager()
        counter = Counter()
        manager.register(counter)
        manager.register(counter)

        assert len(manager._participants) == 1

    def test_rollback_compensations_run_after_restore(self):
        manager = TransactionManager()
        counter = Counter()
        manager.register(counter)
        calls = []

        with pytest.raises(ValueError):
            with manager.atomic():
                counter.value = 5
                manager.on_rollback(lambda: calls.append(("first", counter.value)))
                with manager.atomic():
                    manager.on_rollback(lambda: calls.append(("second", counter.value)))
                raise ValueError("boom")

        # Most recent first, against restored state
        assert calls == [("second", 0), ("first", 0)]

    def test_compensations_dropped_on_commit(self):
        manager = TransactionManager()
        calls = []

        with manager.atomic():
            manager.on_rollback(lambda: calls.append("undo"))
        with pytest.raises(ValueError):
            with manager.atomic():
                raise ValueError("later failure")

        assert calls == []

    def test_compensation_outside_transaction_ignored(self):
        manager = TransactionManager()
        manager.on_rollback(lambda: pytest.fail("should not run"))

        with pytest.raises(ValueError):
            with manager.atomic():
                raise ValueError("boom")

    def test_guard(self):
        manager = TransactionManager()

        with manager.guard("pool"):
            with pytest.raises(ReentrantCallError):
                with manager.guard("pool"):
                    pass
            with manager.guard("other"):
                pass

        with manager.guard("pool"):
            pass


class TestShareLedger:
    """Tests for share accounting."""

    def test_mint_and_burn(self):
        ledger = ShareLedger()
        ledger.mint("alice", 100)
        ledger.mint("bob", 50)
        ledger.burn("alice", 100)

        assert ledger.total_shares == 50
        assert ledger.holders() == ("bob",)
        assert "alice" not in ledger.balances

    def test_burn_more_than_balance(self):
        ledger = ShareLedger()
        ledger.mint("alice", 10)
        with pytest.raises(InsufficientCollateralError):
            ledger.burn("alice", 11)

    def test_conversions_at_genesis(self):
        ledger = ShareLedger()
        assert ledger.to_shares_down(100, 0) == 100
        assert ledger.to_assets_down(100, 0) == 100

    def test_worthless_shares_block_minting(self):
        ledger = ShareLedger()
        ledger.mint("alice", 10)
        assert ledger.to_shares_down(100, 0) == 0

    def test_allowance(self):
        ledger = ShareLedger()
        ledger.approve("alice", "bob", 10)
        ledger.spend_allowance("alice", "bob", 4)

        assert ledger.allowance("alice", "bob") == 6
        with pytest.raises(InsufficientAllowanceError):
            ledger.spend_allowance("alice", "bob", 7)
        # Owners never need an allowance
        ledger.spend_allowance("alice", "alice", 1_000)

    def test_dict_round_trip(self):
        ledger = ShareLedger()
        ledger.mint("alice", 7)
        ledger.approve("alice", "bob", 3)

        restored = ShareLedger()
        restored.load_dict(ledger.to_dict())

        assert restored.balances == {"alice": 7}
        assert restored.allowances == {("alice", "bob"): 3}
        assert restored.total_shares == 7
