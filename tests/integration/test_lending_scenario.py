"""Integration tests: full lending flows and randomized invariants."""

from decimal import Decimal
from unittest.mock import MagicMock

import numpy as np
import pytest

from src.core.errors import PausedError, ProtocolError
from src.core.interfaces import PriceFeed
from src.engine import CollateralPool, Controller, LiquidityPool, Oracle
from tests.conftest import UNIT, MockStrategy, usd


class TestWorkedExample:
    """75% collateral factor, $1 collateral dropping to $0.90."""

    def test_scenario(self, controller, collateral_pool, liquidity_pool, collateral_feed):
        assert collateral_pool.deposit("alice", 1_000 * UNIT) == 1_000 * UNIT

        liquidity_pool.borrow("alice", 750 * UNIT)
        assert controller.account_health("alice") == Decimal("1")

        result = controller.execute(liquidity_pool.borrow, "alice", 1)
        assert result.error_code == "InsufficientCollateral"

        collateral_feed.set_price(usd(0.90))
        assert controller.account_health("alice") == Decimal("0.9")
        snapshot = controller.account_snapshot("alice")
        assert snapshot.liquidation_collateral_value == 720 * UNIT
        assert snapshot.is_liquidatable

        liquidation = controller.liquidate("bob", "alice", "L-USDC", 375 * UNIT, "C-DAI")
        assert liquidation.seized_assets == 375 * UNIT * 105 // 90
        assert controller.liquidation_health("alice") > liquidation.health_before

        # The liquidator can withdraw the seized collateral
        received = collateral_pool.withdraw_all("bob")
        assert received == liquidation.seized_assets

    def test_mocked_feed(self, clock, settings):
        feed = MagicMock(spec=PriceFeed)
        feed.decimals = 8
        feed.latest_round_data.return_value = (7, usd(1.0), clock())

        oracle = Oracle(clock=clock, settings=settings)
        oracle.add_price_feed("DAI", feed)
        oracle.add_price_feed("USDC", feed)
        controller = Controller(oracle, settings=settings)
        collateral = CollateralPool(controller, "DAI")
        debt = LiquidityPool(controller, "USDC")
        controller.list_collateral_market(collateral)
        controller.list_liquidity_market(debt)

        debt.deposit("lender", 100 * UNIT)
        collateral.deposit("alice", 100 * UNIT)
        debt.borrow("alice", 75 * UNIT)

        assert feed.latest_round_data.called
        assert oracle.price("DAI").round_id == 7


class TestStrategyLifecycle:
    """Collateral pool with a strategy under withdrawals and liquidation."""

    def test_liquidation_with_strategy_funds(
        self, controller, collateral_pool, liquidity_pool, collateral_feed
    ):
        strategy = MockStrategy("DAI")
        collateral_pool.set_idle_buffer(50 * UNIT)
        collateral_pool.set_strategy(strategy)

        collateral_pool.deposit("alice", 1_000 * UNIT)
        liquidity_pool.borrow("alice", 700 * UNIT)
        assert strategy.balance() == 950 * UNIT

        collateral_feed.set_price(usd(0.85))
        controller.liquidate("bob", "alice", "L-USDC", 200 * UNIT, "C-DAI")

        # Seized shares are backed by strategy funds
        received = collateral_pool.withdraw_all("bob")
        assert received > 200 * UNIT
        assert strategy.balance() + collateral_pool.state.idle == collateral_pool.total_assets()


class TestRandomizedInvariants:
    """Seeded random operation sequences."""

    ACCOUNTS = ["alice", "bob", "carol", "dave"]

    @pytest.mark.parametrize("seed", [1, 7, 42])
    def test_collateral_share_conservation(self, collateral_pool, seed):
        rng = np.random.default_rng(seed)

        for _ in range(200):
            account = self.ACCOUNTS[rng.integers(len(self.ACCOUNTS))]
            amount = int(rng.integers(1, 10**6))
            op = rng.integers(4)
            try:
                if op == 0:
                    collateral_pool.deposit(account, amount)
                elif op == 1:
                    collateral_pool.withdraw(account, amount)
                elif op == 2:
                    collateral_pool.redeem(account, amount)
                else:
                    # Donation skews the exchange rate
                    collateral_pool.state.idle += amount // 10
            except ProtocolError:
                pass

            shares = collateral_pool.shares
            assert sum(shares.balances.values()) == shares.total_shares
            held = sum(collateral_pool.convert_to_assets(s) for s in shares.balances.values())
            assert held <= collateral_pool.total_assets()

    @pytest.mark.parametrize("seed", [3, 11])
    def test_round_trips_never_favour_user(self, collateral_pool, seed):
        rng = np.random.default_rng(seed)
        collateral_pool.deposit("seed", 10**9)
        collateral_pool.state.idle += int(rng.integers(1, 10**8))

        for _ in range(50):
            x = int(rng.integers(10**3, 10**7))

            shares = collateral_pool.deposit("alice", x)
            assert collateral_pool.redeem("alice", shares) <= x

            paid = collateral_pool.mint("alice", x)
            assert collateral_pool.redeem("alice", x) <= paid

    @pytest.mark.parametrize("seed", [5, 13])
    def test_lending_invariants(
        self, controller, collateral_pool, liquidity_pool, collateral_feed, debt_feed, clock, seed
    ):
        rng = np.random.default_rng(seed)
        for account in self.ACCOUNTS:
            collateral_pool.deposit(account, 1_000 * UNIT)

        last_index = liquidity_pool.borrow_index
        for _ in range(150):
            account = self.ACCOUNTS[rng.integers(len(self.ACCOUNTS))]
            amount = int(rng.integers(1, 400)) * UNIT
            op = rng.integers(6)

            if op == 5:
                clock.advance(int(rng.integers(1, 30 * 86_400)))
                collateral_feed.set_price(usd(float(rng.uniform(0.7, 1.2))))
                debt_feed.set_price(usd(1.0))
                continue

            if rng.random() < 0.2:
                controller.set_borrow_paused("L-USDC", not liquidity_pool.paused)

            name = ["borrow", "repay", "repay_all", "withdraw", "liquidate"][op]
            if name == "borrow":
                result = controller.execute(liquidity_pool.borrow, account, amount)
            elif name == "repay":
                result = controller.execute(liquidity_pool.repay, account, amount)
            elif name == "repay_all":
                result = controller.execute(liquidity_pool.repay_all, account)
            elif name == "withdraw":
                result = controller.execute(collateral_pool.withdraw, account, amount)
            else:
                result = controller.execute(
                    controller.liquidate, "keeper", account, "L-USDC", amount // 4, "C-DAI"
                )

            if name in ("repay", "repay_all"):
                assert result.error_code != PausedError.code
            if result.is_ok and name in ("borrow", "withdraw"):
                assert controller.account_health(account) >= 1

            assert liquidity_pool.borrow_index >= last_index
            last_index = liquidity_pool.borrow_index

            debt_shares = sum(liquidity_pool.debt_shares.values())
            assert debt_shares == liquidity_pool.total_debt_shares
            state = liquidity_pool.state
            assert state.cash + state.total_borrows - state.total_reserves >= 0
