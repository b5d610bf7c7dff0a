"""Controller: market registry, solvency checks and liquidations."""

import copy
import logging
import time
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Union

from config.settings import Settings, get_settings
from src.core.constants import (
    BPS_SCALE,
    DEPOSIT_HALT_LIMIT,
    MAX_LIQUIDATION_BONUS_BPS,
    UNLIMITED,
)
from src.core.errors import (
    ExcessSeizeError,
    GreaterThanError,
    HealthNotImprovedError,
    HealthyPositionError,
    InsufficientCollateralError,
    LessThanError,
    MissingPriceFeedError,
    NotAuthorizedError,
    PausedError,
    ProtocolError,
    SameValueError,
    ZeroAddressError,
    ZeroAmountError,
    ZeroSharesError,
)
from src.core.interfaces import DebtMarket, PriceSource, Vault
from src.core.models import (
    AccountHealth,
    LiquidationResult,
    Market,
    MarketKind,
    TxResult,
    TxStatus,
)
from src.engine.registry import MarketRegistry
from src.engine.risk import RiskCalculator
from src.engine.transaction import TransactionManager
from src.protocols.lending.config import (
    DEFAULT_COLLATERAL_FACTOR_BPS,
    DEFAULT_LIQUIDATION_BONUS_BPS,
    DEFAULT_LIQUIDATION_THRESHOLD_BPS,
)

logger = logging.getLogger(__name__)

Pool = Union[Vault, DebtMarket]


class Controller:
    """
    Coordinating authority of the lending engine.

    Owns the market registry, answers the pools' authorization queries and
    executes liquidations. Pools hold a reference to the controller for
    authorization only; the controller holds pool handles for reads and for
    the liquidation hooks.

    Health:
        C = sum(collateral assets * price * collateral factor)
        D = sum(owed debt * price)
        HF = C / D, infinite without debt

    Collateral values round down and debt values round up, so the integer
    comparison ``C >= D`` never lets an account borrow past its limit.
    """

    def __init__(
        self,
        oracle: PriceSource,
        clock: Optional[Callable[[], int]] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize controller.

        Args:
            oracle: Price source for every listed asset
            clock: Returns current unix time in seconds (default: oracle clock)
            settings: Engine settings
        """
        if oracle is None:
            raise ZeroAddressError("oracle")

        self.oracle = oracle
        self.settings = settings or get_settings()
        self.clock = clock or getattr(oracle, "clock", None) or (lambda: int(time.time()))
        self.markets = MarketRegistry()
        self.transactions = TransactionManager()
        self._pools: Dict[str, Pool] = {}

        self.transactions.register(self)

    def now(self) -> int:
        return int(self.clock())

    # ========== TRANSACTION PARTICIPANT ==========

    def checkpoint(self) -> Any:
        return copy.deepcopy(self.markets), dict(self._pools)

    def restore(self, snapshot: Any) -> None:
        self.markets, self._pools = snapshot

    # ========== MARKET LISTING ==========

    def list_collateral_market(
        self,
        pool: Vault,
        collateral_factor_bps: int = DEFAULT_COLLATERAL_FACTOR_BPS,
        liquidation_threshold_bps: int = DEFAULT_LIQUIDATION_THRESHOLD_BPS,
        liquidation_bonus_bps: int = DEFAULT_LIQUIDATION_BONUS_BPS,
    ) -> Market:
        """
        List a collateral pool.

        Raises:
            MarketAlreadyListedError: market id in use
            MissingPriceFeedError: oracle cannot price the asset
            GreaterThanError / LessThanError: risk parameters out of bounds
        """
        self._validate_risk_params(
            collateral_factor_bps, liquidation_threshold_bps, liquidation_bonus_bps
        )
        market = Market(
            market_id=pool.market_id,
            asset_id=pool.asset_id,
            kind=MarketKind.COLLATERAL,
            collateral_factor_bps=collateral_factor_bps,
            liquidation_threshold_bps=liquidation_threshold_bps,
            liquidation_bonus_bps=liquidation_bonus_bps,
        )
        self._list(pool, market)
        return market

    def list_liquidity_market(self, pool: DebtMarket) -> Market:
        """List a liquidity pool."""
        market = Market(
            market_id=pool.market_id,
            asset_id=pool.asset_id,
            kind=MarketKind.LIQUIDITY,
        )
        self._list(pool, market)
        return market

    def _list(self, pool: Pool, market: Market) -> None:
        if getattr(pool, "controller", None) is not self:
            raise NotAuthorizedError("list a pool of another controller")
        if not self.oracle.feeds(market.asset_id):
            raise MissingPriceFeedError(market.asset_id)

        self.markets.add(market)
        self._pools[market.market_id] = pool
        logger.info(f"Listed {market.kind.value} market {market.market_id} ({market.asset_id})")

    def delist_market(self, market_id: str) -> None:
        """
        Stop new deposits and borrows on a market.

        Existing positions keep counting toward health and can still be
        repaid, withdrawn and liquidated.
        """
        market = self.markets.get(market_id)
        if not market.active:
            raise SameValueError("active", False)
        market.active = False
        logger.info(f"Delisted market {market_id}")

    def relist_market(self, market_id: str) -> None:
        market = self.markets.get(market_id)
        if market.active:
            raise SameValueError("active", True)
        market.active = True
        logger.info(f"Relisted market {market_id}")

    def pool(self, market_id: str) -> Pool:
        self.markets.get(market_id)
        return self._pools[market_id]

    # ========== RISK PARAMETERS ==========

    @staticmethod
    def _validate_risk_params(cf_bps: int, lt_bps: int, bonus_bps: int) -> None:
        if cf_bps < 0:
            raise LessThanError("collateral_factor_bps", cf_bps, 0)
        if lt_bps > BPS_SCALE:
            raise GreaterThanError("liquidation_threshold_bps", lt_bps, BPS_SCALE)
        if cf_bps > lt_bps:
            raise GreaterThanError("collateral_factor_bps", cf_bps, lt_bps)
        if bonus_bps < 0:
            raise LessThanError("liquidation_bonus_bps", bonus_bps, 0)
        if bonus_bps > MAX_LIQUIDATION_BONUS_BPS:
            raise GreaterThanError("liquidation_bonus_bps", bonus_bps, MAX_LIQUIDATION_BONUS_BPS)

    def set_collateral_factor(self, market_id: str, bps: int) -> None:
        market = self.markets.get_kind(market_id, MarketKind.COLLATERAL)
        if bps == market.collateral_factor_bps:
            raise SameValueError("collateral_factor_bps", bps)
        self._validate_risk_params(
            bps, market.liquidation_threshold_bps, market.liquidation_bonus_bps
        )
        logger.info(f"{market_id}: collateral factor {market.collateral_factor_bps} -> {bps} bps")
        market.collateral_factor_bps = bps

    def set_liquidation_threshold(self, market_id: str, bps: int) -> None:
        market = self.markets.get_kind(market_id, MarketKind.COLLATERAL)
        if bps == market.liquidation_threshold_bps:
            raise SameValueError("liquidation_threshold_bps", bps)
        if bps < market.collateral_factor_bps:
            raise LessThanError("liquidation_threshold_bps", bps, market.collateral_factor_bps)
        self._validate_risk_params(market.collateral_factor_bps, bps, market.liquidation_bonus_bps)
        logger.info(
            f"{market_id}: liquidation threshold {market.liquidation_threshold_bps} -> {bps} bps"
        )
        market.liquidation_threshold_bps = bps

    def set_liquidation_bonus(self, market_id: str, bps: int) -> None:
        market = self.markets.get_kind(market_id, MarketKind.COLLATERAL)
        if bps == market.liquidation_bonus_bps:
            raise SameValueError("liquidation_bonus_bps", bps)
        self._validate_risk_params(
            market.collateral_factor_bps, market.liquidation_threshold_bps, bps
        )
        logger.info(f"{market_id}: liquidation bonus {market.liquidation_bonus_bps} -> {bps} bps")
        market.liquidation_bonus_bps = bps

    # ========== GATES ==========

    def set_withdraw_paused(self, market_id: str, paused: bool) -> None:
        """Pause withdrawals of a collateral market."""
        market = self.markets.get_kind(market_id, MarketKind.COLLATERAL)
        if market.paused.withdraw == paused:
            raise SameValueError("withdraw_paused", paused)
        market.paused.withdraw = paused
        logger.info(f"{market_id}: withdraw {'paused' if paused else 'unpaused'}")

    def set_borrow_paused(self, market_id: str, paused: bool) -> None:
        """Pause borrowing from a liquidity market. Repayment stays open."""
        market = self.markets.get_kind(market_id, MarketKind.LIQUIDITY)
        if market.paused.borrow == paused:
            raise SameValueError("borrow_paused", paused)
        market.paused.borrow = paused
        logger.info(f"{market_id}: borrow {'paused' if paused else 'unpaused'}")

    def set_deposit_limit(self, market_id: str, limit: int) -> None:
        """Cap total deposits of a market (0 = unlimited)."""
        market = self.markets.get(market_id)
        if limit < 0:
            raise LessThanError("deposit_limit", limit, 0)
        if limit == market.deposit_limit:
            raise SameValueError("deposit_limit", limit)
        market.deposit_limit = limit
        logger.info(f"{market_id}: deposit limit {limit or 'unlimited'}")

    def set_user_deposit_limit(self, market_id: str, limit: int) -> None:
        """Cap deposits per account (0 = unlimited)."""
        market = self.markets.get(market_id)
        if limit < 0:
            raise LessThanError("user_deposit_limit", limit, 0)
        if limit == market.user_deposit_limit:
            raise SameValueError("user_deposit_limit", limit)
        market.user_deposit_limit = limit
        logger.info(f"{market_id}: user deposit limit {limit or 'unlimited'}")

    def halt_deposits(self, market_id: str) -> None:
        """Stop deposits by setting the limit to the minimum unit."""
        self.set_deposit_limit(market_id, DEPOSIT_HALT_LIMIT)

    def available_deposit(self, market_id: str) -> Optional[int]:
        """Assets the market still accepts, None when unlimited."""
        market = self.markets.get(market_id)
        if market.deposit_limit == UNLIMITED:
            return None
        if market.deposit_limit == DEPOSIT_HALT_LIMIT:
            return 0
        return max(0, market.deposit_limit - self._pools[market_id].total_assets())

    def available_user_deposit(self, market_id: str, account: str) -> Optional[int]:
        """Assets the account may still deposit, None when unlimited."""
        market = self.markets.get(market_id)
        if market.user_deposit_limit == UNLIMITED:
            return None
        pool = self._pools[market_id]
        held = pool.convert_to_assets(pool.balance_of(account))
        return max(0, market.user_deposit_limit - held)

    def check_deposit(self, pool: Pool, account: str, amount: int) -> None:
        """
        Enforce deposit gates.

        Raises:
            PausedError: market delisted, deposits halted or limit exhausted
            GreaterThanError: amount above the remaining market or user limit
        """
        market = self.markets.get(pool.market_id)
        if not market.active:
            raise PausedError(market.market_id, "deposit")

        available = self.available_deposit(market.market_id)
        if available is not None:
            if available == 0:
                raise PausedError(market.market_id, "deposit")
            if amount > available:
                raise GreaterThanError("deposit_limit", amount, available)

        user_available = self.available_user_deposit(market.market_id, account)
        if user_available is not None and amount > user_available:
            raise GreaterThanError("user_deposit_limit", amount, user_available)

    # ========== HEALTH ==========

    def account_snapshot(
        self,
        account: str,
        collateral_delta: Optional[Dict[str, int]] = None,
        debt_delta: Optional[Dict[str, int]] = None,
        price_collateral: bool = False,
    ) -> AccountHealth:
        """
        Value an account across every listed market.

        Args:
            account: Account to value
            collateral_delta: Projected share changes per collateral market
            debt_delta: Projected owed-amount changes per liquidity market
            price_collateral: Value collateral even without debt

        Returns:
            AccountHealth (collateral is left unpriced for debt-free accounts
            unless requested, so stale collateral feeds never block them)
        """
        collateral_delta = collateral_delta or {}
        debt_delta = debt_delta or {}
        health = AccountHealth(account=account)

        for market in self.markets.liquidity_markets():
            pool = self._pools[market.market_id]
            owed = pool.debt_of(account) + debt_delta.get(market.market_id, 0)
            if owed <= 0:
                continue
            value = self.oracle.value_of(market.asset_id, owed, pool.decimals, round_up=True)
            health.debt_values[market.market_id] = value
            health.debt_value += value

        if health.debt_value == 0 and not price_collateral:
            return health

        for market in self.markets.collateral_markets():
            pool = self._pools[market.market_id]
            shares = pool.balance_of(account) + collateral_delta.get(market.market_id, 0)
            if shares <= 0:
                continue
            assets = pool.convert_to_assets(shares)
            value = self.oracle.value_of(market.asset_id, assets, pool.decimals)
            health.collateral_values[market.market_id] = value
            health.borrow_collateral_value += RiskCalculator.weighted_value(
                value, market.collateral_factor_bps
            )
            health.liquidation_collateral_value += RiskCalculator.weighted_value(
                value, market.liquidation_threshold_bps
            )

        return health

    def account_health(self, account: str) -> Decimal:
        """Borrowing health factor (collateral factor weighting)."""
        return self.account_snapshot(account).health_factor

    def liquidation_health(self, account: str) -> Decimal:
        """Liquidation health factor (liquidation threshold weighting)."""
        return self.account_snapshot(account).liquidation_health_factor

    def available_borrow(self, account: str, market_id: str) -> int:
        """Amount of a liquidity market's asset the account can still borrow."""
        market = self.markets.get_kind(market_id, MarketKind.LIQUIDITY)
        pool = self._pools[market_id]
        health = self.account_snapshot(account, price_collateral=True)
        capacity = RiskCalculator.borrow_capacity(
            health.borrow_collateral_value, health.debt_value
        )
        if capacity == 0:
            return 0
        price = self.oracle.price_wad(market.asset_id)
        return RiskCalculator.amount_for_value(capacity, price, pool.decimals)

    def authorize_borrow(self, account: str, pool: DebtMarket, amount: int) -> None:
        """
        Require projected health >= 1 after ``amount`` of new debt.

        Raises:
            InsufficientCollateralError: projected health below 1
        """
        health = self.account_snapshot(account, debt_delta={pool.market_id: amount})
        if not RiskCalculator.is_healthy(health.borrow_collateral_value, health.debt_value):
            raise InsufficientCollateralError(
                account,
                f"health {health.health_factor:.4f} after borrowing {amount} "
                f"from {pool.market_id}",
            )

    def authorize_withdraw(self, account: str, pool: Vault, shares: int) -> None:
        """
        Require projected health >= 1 after removing ``shares`` of collateral.

        Raises:
            InsufficientCollateralError: projected health below 1
        """
        health = self.account_snapshot(account, collateral_delta={pool.market_id: -shares})
        if not RiskCalculator.is_healthy(health.borrow_collateral_value, health.debt_value):
            raise InsufficientCollateralError(
                account,
                f"health {health.health_factor:.4f} after removing {shares} shares "
                f"from {pool.market_id}",
            )

    # ========== LIQUIDATION ==========

    def liquidate(
        self,
        liquidator: str,
        account: str,
        debt_market_id: str,
        repay_amount: int,
        collateral_market_id: str,
    ) -> LiquidationResult:
        """
        Repay part of an unhealthy account's debt and seize its collateral.

        seized = repay * price(debt) / price(collateral) * (1 + bonus)

        Raises:
            HealthyPositionError: liquidation health >= 1
            ExcessSeizeError: seizure exceeds the account's collateral
            ExcessRepaymentError: repay_amount exceeds the owed debt
            HealthNotImprovedError: liquidation would leave the account
                worse off while debt remains

        Returns:
            LiquidationResult
        """
        if not liquidator:
            raise ZeroAddressError("liquidator")
        if not account:
            raise ZeroAddressError("account")
        if repay_amount <= 0:
            raise ZeroAmountError("repay_amount")

        self.markets.get_kind(debt_market_id, MarketKind.LIQUIDITY)
        collateral_market = self.markets.get_kind(collateral_market_id, MarketKind.COLLATERAL)
        debt_pool = self._pools[debt_market_id]
        collateral_pool = self._pools[collateral_market_id]

        with self.transactions.atomic():
            debt_pool.accrue_interest()

            before = self.account_snapshot(account)
            if not before.is_liquidatable:
                raise HealthyPositionError(account, before.liquidation_health_factor)

            seized_assets = RiskCalculator.collateral_to_seize(
                repay_amount,
                self.oracle.price_wad(debt_pool.asset_id),
                debt_pool.decimals,
                self.oracle.price_wad(collateral_pool.asset_id),
                collateral_pool.decimals,
                collateral_market.liquidation_bonus_bps,
            )
            seized_shares = collateral_pool.convert_to_shares(seized_assets)
            if seized_shares == 0:
                raise ZeroSharesError("seized_shares")
            available = collateral_pool.balance_of(account)
            if seized_shares > available:
                raise ExcessSeizeError(account, seized_shares, available)

            debt_pool.seize_debt(self, liquidator, account, repay_amount)
            collateral_pool.seize(self, account, liquidator, seized_shares)

            after = self.account_snapshot(account)
            remaining = debt_pool.debt_of(account)
            if remaining > 0 and (
                after.liquidation_health_factor < before.liquidation_health_factor
            ):
                raise HealthNotImprovedError(
                    account, before.liquidation_health_factor, after.liquidation_health_factor
                )

        logger.info(
            f"Liquidated {account}: {liquidator} repaid {repay_amount} on {debt_market_id}, "
            f"seized {seized_shares} shares ({seized_assets}) on {collateral_market_id}"
        )
        return LiquidationResult(
            liquidator=liquidator,
            account=account,
            debt_market_id=debt_market_id,
            collateral_market_id=collateral_market_id,
            repaid=repay_amount,
            seized_shares=seized_shares,
            seized_assets=seized_assets,
            health_before=before.liquidation_health_factor,
            health_after=after.liquidation_health_factor,
            remaining_debt=remaining,
        )

    # ========== EXECUTION ==========

    def execute(self, operation: Callable, *args, **kwargs) -> TxResult:
        """
        Run an operation atomically and report a tagged result.

        Protocol errors become REVERTED results after every touched ledger
        has been restored; any other exception propagates.

        Example:
            result = controller.execute(pool.borrow, "alice", 100)
        """
        name = getattr(operation, "__name__", repr(operation))
        try:
            with self.transactions.atomic():
                value = operation(*args, **kwargs)
        except ProtocolError as e:
            logger.warning(f"{name} reverted: {e.code}: {e}")
            return TxResult(
                operation=name,
                status=TxStatus.REVERTED,
                error_code=e.code,
                error_message=str(e),
                metadata={"args": args, "kwargs": kwargs},
            )
        return TxResult(operation=name, status=TxStatus.SUCCESS, value=value)
