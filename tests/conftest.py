"""Pytest configuration and fixtures."""

from typing import Optional

import pytest

from config.settings import Settings
from src.engine import CollateralPool, Controller, LiquidityPool, Oracle

UNIT = 10**18
START_TIME = 1_700_000_000


class ManualClock:
    """Deterministic clock advanced by tests."""

    def __init__(self, start: int = START_TIME):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


class MockPriceFeed:
    """Round-based feed with 8 decimals by default."""

    def __init__(self, clock: ManualClock, price: int, decimals: int = 8):
        self.clock = clock
        self.decimals = decimals
        self.round_id = 1
        self.answer = price
        self.updated_at = clock()

    def set_price(self, price: int, updated_at: Optional[int] = None) -> None:
        self.round_id += 1
        self.answer = price
        self.updated_at = self.clock() if updated_at is None else updated_at

    def latest_round_data(self):
        return self.round_id, self.answer, self.updated_at


class PlainStrategy:
    """Strategy exposing only deposit / withdraw / balance."""

    def __init__(self, asset_id: str, max_release: Optional[int] = None):
        self.asset_id = asset_id
        self.max_release = max_release
        self.held = 0
        self.deposits = []

    def deposit(self, amount: int) -> None:
        self.held += amount
        self.deposits.append(amount)

    def withdraw(self, amount: int) -> int:
        released = min(amount, self.held)
        if self.max_release is not None:
            released = min(released, self.max_release)
        self.held -= released
        return released

    def balance(self) -> int:
        return self.held


class MockStrategy(PlainStrategy):
    """Strategy that also rolls back with the pool's transaction."""

    def checkpoint(self):
        return self.held, list(self.deposits)

    def restore(self, snapshot) -> None:
        self.held, self.deposits = snapshot


def usd(price: float, decimals: int = 8) -> int:
    """Feed answer for a USD price."""
    return int(round(price * 10**decimals))


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment."""
    return Settings(
        oracle_max_staleness_seconds=3600,
        collateral_withdraw_fee_bps=0,
        min_strategy_deposit=0,
        storage_dir=tmp_path / "ledger",
    )


@pytest.fixture
def oracle(clock, settings) -> Oracle:
    return Oracle(clock=clock, settings=settings)


@pytest.fixture
def collateral_feed(clock, oracle) -> MockPriceFeed:
    feed = MockPriceFeed(clock, usd(1.0))
    oracle.add_price_feed("DAI", feed)
    return feed


@pytest.fixture
def debt_feed(clock, oracle) -> MockPriceFeed:
    feed = MockPriceFeed(clock, usd(1.0))
    oracle.add_price_feed("USDC", feed)
    return feed


@pytest.fixture
def controller(oracle, clock, settings, collateral_feed, debt_feed) -> Controller:
    return Controller(oracle, clock=clock, settings=settings)


@pytest.fixture
def collateral_pool(controller) -> CollateralPool:
    """DAI collateral market: 75% factor, 80% threshold, 5% bonus."""
    pool = CollateralPool(controller, "DAI", treasury="treasury")
    controller.list_collateral_market(
        pool,
        collateral_factor_bps=7_500,
        liquidation_threshold_bps=8_000,
        liquidation_bonus_bps=500,
    )
    return pool


@pytest.fixture
def liquidity_pool(controller) -> LiquidityPool:
    """USDC liquidity market seeded with 10,000 USDC."""
    pool = LiquidityPool(controller, "USDC", treasury="treasury")
    controller.list_liquidity_market(pool)
    pool.deposit("lender", 10_000 * UNIT)
    return pool


@pytest.fixture
def borrower(collateral_pool, liquidity_pool) -> str:
    """Account with 1000 DAI deposited and 750 USDC borrowed (HF = 1.0)."""
    collateral_pool.deposit("alice", 1_000 * UNIT)
    liquidity_pool.borrow("alice", 750 * UNIT)
    return "alice"
