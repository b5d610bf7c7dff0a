"""Collateral vault with optional yield strategy."""

import copy
import logging
from typing import Any, Optional, Tuple

from config.settings import Settings
from src.core.constants import MAX_WITHDRAW_FEE_BPS, WAD
from src.core.errors import (
    CouldNotWithdrawFromStrategyError,
    GreaterThanError,
    InsufficientCollateralError,
    LessThanError,
    NotAuthorizedError,
    NotSameAssetError,
    PausedError,
    SameValueError,
    StrategyStillHasDepositsError,
    ZeroAddressError,
    ZeroAmountError,
    ZeroSharesError,
)
from src.core.fixed_point import bps_up, mul_div_down
from src.core.interfaces import Strategy, Vault
from src.core.models import CollateralPosition, Market, VaultState
from src.engine.shares import ShareLedger
from src.engine.transaction import transactional

logger = logging.getLogger(__name__)


class CollateralPool(Vault):
    """
    Share vault for one collateral asset.

    Exchange rate is ``total_assets / total_shares`` (1:1 at genesis).
    Deposits are never paused locally, only throttled by the controller's
    deposit limits. Withdrawals can be paused and need the controller to
    accept the account's post-withdrawal health.

    Idle assets above ``idle_buffer`` are forwarded to the strategy. The pool
    books what a strategy actually releases, never what was requested.
    """

    def __init__(
        self,
        controller,
        asset_id: str,
        decimals: int = 18,
        market_id: Optional[str] = None,
        strategy: Optional[Strategy] = None,
        idle_buffer: int = 0,
        treasury: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize pool.

        Args:
            controller: Controller used for authorization and transactions
            asset_id: Collateral asset
            decimals: Asset decimals
            market_id: Registry id (default: "C-{asset_id}")
            strategy: Optional yield strategy for idle funds
            idle_buffer: Assets always kept in the pool
            treasury: Receiver of withdrawal fees
            settings: Engine settings (default: controller settings)
        """
        if not asset_id:
            raise ZeroAddressError("asset_id")
        if controller is None:
            raise ZeroAddressError("controller")
        if idle_buffer < 0:
            raise LessThanError("idle_buffer", idle_buffer, 0)

        settings = settings or controller.settings
        self.controller = controller
        self.asset_id = asset_id
        self.decimals = decimals
        self.market_id = market_id or f"C-{asset_id}"
        self.treasury = treasury
        self.idle_buffer = idle_buffer
        self.withdraw_fee_bps = settings.collateral_withdraw_fee_bps
        self.min_strategy_deposit = settings.min_strategy_deposit

        self.state = VaultState()
        self.shares = ShareLedger()
        self.strategy: Optional[Strategy] = None

        controller.transactions.register(self)
        if strategy is not None:
            self._attach_strategy(strategy)

    # ========== TRANSACTION PARTICIPANT ==========

    def checkpoint(self) -> Any:
        # Strategies are external; they checkpoint themselves when registered
        return (
            copy.deepcopy((self.state, self.shares)),
            self.strategy,
            self.idle_buffer,
            self.withdraw_fee_bps,
            self.min_strategy_deposit,
            self.treasury,
        )

    def restore(self, snapshot: Any) -> None:
        (
            (self.state, self.shares),
            self.strategy,
            self.idle_buffer,
            self.withdraw_fee_bps,
            self.min_strategy_deposit,
            self.treasury,
        ) = snapshot

    # ========== DEPOSIT ==========

    @transactional
    def deposit(self, account: str, amount: int, receiver: Optional[str] = None) -> int:
        """
        Deposit collateral.

        Raises:
            ZeroAmountError: amount is zero
            PausedError: Market deposit limit reached or market delisted
            GreaterThanError: amount exceeds the remaining deposit limit

        Returns:
            Shares minted (rounded down)
        """
        if amount <= 0:
            raise ZeroAmountError()
        receiver = receiver or account
        if not receiver:
            raise ZeroAddressError("receiver")

        self.controller.check_deposit(self, receiver, amount)

        shares = self.shares.to_shares_down(amount, self.total_assets())
        if shares == 0:
            raise ZeroSharesError()

        self.shares.mint(receiver, shares)
        self.state.idle += amount
        logger.info(f"{self.market_id}: {account} deposited {amount} for {shares} shares")

        self._push_to_strategy()
        return shares

    @transactional
    def mint(self, account: str, shares: int, receiver: Optional[str] = None) -> int:
        """
        Mint an exact amount of shares.

        Returns:
            Assets pulled in (rounded up)
        """
        if shares <= 0:
            raise ZeroSharesError()
        receiver = receiver or account
        if not receiver:
            raise ZeroAddressError("receiver")

        amount = self.shares.to_assets_up(shares, self.total_assets())
        if amount == 0:
            raise ZeroAmountError("assets")
        self.controller.check_deposit(self, receiver, amount)

        self.shares.mint(receiver, shares)
        self.state.idle += amount
        logger.info(f"{self.market_id}: {account} minted {shares} shares for {amount}")

        self._push_to_strategy()
        return amount

    # ========== WITHDRAW ==========

    @transactional
    def withdraw(
        self,
        account: str,
        amount: int,
        to: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> int:
        """
        Withdraw an exact amount of collateral.

        The withdrawal fee is taken from ``amount``.

        Args:
            account: Caller
            amount: Assets to withdraw, fee included
            to: Receiver (default: caller)
            owner: Share owner (default: caller, else needs allowance)

        Raises:
            PausedError: Withdrawals are paused on this market
            InsufficientCollateralError: Post-withdrawal health < 1

        Returns:
            Shares burned (rounded up)
        """
        if amount <= 0:
            raise ZeroAmountError()
        self._check_withdraw_allowed()

        shares = self.shares.to_shares_up(amount, self.total_assets())
        self._withdraw(account, owner or account, to or account, shares, amount)
        return shares

    @transactional
    def redeem(
        self,
        account: str,
        shares: int,
        to: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> int:
        """
        Burn shares for collateral.

        Returns:
            Assets received after the withdrawal fee (rounded down)
        """
        if shares <= 0:
            raise ZeroSharesError()
        self._check_withdraw_allowed()

        amount = self.shares.to_assets_down(shares, self.total_assets())
        if amount == 0:
            raise ZeroAmountError("assets")
        return self._withdraw(account, owner or account, to or account, shares, amount)

    @transactional
    def withdraw_all(self, account: str, to: Optional[str] = None) -> int:
        """
        Redeem every share of the account.

        Returns:
            Assets received (0 when the account holds no shares)
        """
        self._check_withdraw_allowed()

        shares = self.shares.balance_of(account)
        if shares == 0:
            return 0
        amount = self.shares.to_assets_down(shares, self.total_assets())
        if amount == 0:
            raise ZeroAmountError("assets")
        return self._withdraw(account, account, to or account, shares, amount)

    def _withdraw(self, account: str, owner: str, to: str, shares: int, amount: int) -> int:
        balance = self.shares.balance_of(owner)
        if shares > balance:
            raise InsufficientCollateralError(
                owner, f"withdrawing {shares} shares with balance {balance}"
            )

        self.controller.authorize_withdraw(owner, self, shares)
        # Funds are pulled while shares and assets still agree
        self._ensure_idle(amount)
        self.shares.spend_allowance(owner, account, shares)
        self.shares.burn(owner, shares)

        fee = bps_up(amount, self.withdraw_fee_bps) if self.withdraw_fee_bps else 0
        self.state.idle -= amount
        self.state.collected_fees += fee

        received = amount - fee
        logger.info(
            f"{self.market_id}: {owner} withdrew {received} to {to} "
            f"({shares} shares, fee {fee})"
        )
        return received

    def _check_withdraw_allowed(self) -> None:
        if self.market.paused.withdraw:
            raise PausedError(self.market_id, "withdraw")

    # ========== SHARE TRANSFERS ==========

    @transactional
    def transfer(self, account: str, to: str, shares: int) -> None:
        """Move shares to another account if the sender stays healthy."""
        if shares <= 0:
            raise ZeroSharesError()
        if not to:
            raise ZeroAddressError("to")
        balance = self.shares.balance_of(account)
        if shares > balance:
            raise InsufficientCollateralError(
                account, f"transferring {shares} shares with balance {balance}"
            )

        self.controller.authorize_withdraw(account, self, shares)
        self.shares.move(account, to, shares)
        logger.info(f"{self.market_id}: {account} transferred {shares} shares to {to}")

    def approve(self, owner: str, spender: str, shares: int) -> None:
        """Allow spender to withdraw up to ``shares`` of owner's collateral."""
        if not spender:
            raise ZeroAddressError("spender")
        if shares < 0:
            raise LessThanError("shares", shares, 0)
        self.shares.approve(owner, spender, shares)

    def allowance(self, owner: str, spender: str) -> int:
        return self.shares.allowance(owner, spender)

    @transactional
    def seize(self, caller: Any, account: str, liquidator: str, shares: int) -> None:
        """
        Move shares from a liquidated account to the liquidator.

        Only the controller may call this, from inside a liquidation.
        """
        if caller is not self.controller:
            raise NotAuthorizedError("seize collateral")
        if shares <= 0:
            raise ZeroSharesError()
        if not liquidator:
            raise ZeroAddressError("liquidator")

        self.shares.move(account, liquidator, shares)
        logger.info(f"{self.market_id}: seized {shares} shares of {account} for {liquidator}")

    # ========== STRATEGY ==========

    @transactional
    def set_strategy(self, strategy: Optional[Strategy]) -> None:
        """
        Replace the strategy, migrating funds from the old one.

        Raises:
            SameValueError: strategy already set
            NotSameAssetError: strategy manages a different asset
            StrategyStillHasDepositsError: old strategy could not be drained
        """
        if strategy is self.strategy:
            raise SameValueError("strategy")
        if strategy is not None and strategy.asset_id != self.asset_id:
            raise NotSameAssetError(self.asset_id, strategy.asset_id)

        self._detach_strategy()
        if strategy is not None:
            self._attach_strategy(strategy)
            self._push_to_strategy()

    @transactional
    def sync_strategy(self) -> int:
        """
        Book strategy gains or losses into total assets.

        Returns:
            Change in booked strategy assets
        """
        if self.strategy is None:
            return 0
        balance = self.strategy.balance()
        delta = balance - self.state.strategy_assets
        self.state.strategy_assets = balance
        if delta:
            logger.info(f"{self.market_id}: strategy result {delta:+d}")
        return delta

    @transactional
    def set_idle_buffer(self, amount: int) -> None:
        if amount < 0:
            raise LessThanError("idle_buffer", amount, 0)
        if amount == self.idle_buffer:
            raise SameValueError("idle_buffer", amount)
        logger.info(f"{self.market_id}: idle buffer {self.idle_buffer} -> {amount}")
        self.idle_buffer = amount
        self._push_to_strategy()

    def set_min_strategy_deposit(self, amount: int) -> None:
        if amount < 0:
            raise LessThanError("min_strategy_deposit", amount, 0)
        if amount == self.min_strategy_deposit:
            raise SameValueError("min_strategy_deposit", amount)
        self.min_strategy_deposit = amount

    def _attach_strategy(self, strategy: Strategy) -> None:
        if strategy.asset_id != self.asset_id:
            raise NotSameAssetError(self.asset_id, strategy.asset_id)
        if hasattr(strategy, "checkpoint") and hasattr(strategy, "restore"):
            self.controller.transactions.register(strategy)
        self.strategy = strategy
        logger.info(f"{self.market_id}: strategy attached")

    def _detach_strategy(self) -> None:
        old = self.strategy
        if old is None:
            return

        balance = old.balance()
        released = self._strategy_withdraw(old, balance) if balance else 0
        remaining = old.balance()
        if remaining > 0:
            raise StrategyStillHasDepositsError(self.market_id, remaining)

        if released != self.state.strategy_assets:
            logger.warning(
                f"{self.market_id}: strategy released {released}, "
                f"booked {self.state.strategy_assets}"
            )
        self.state.idle += released
        self.state.strategy_assets = 0
        self.strategy = None
        logger.info(f"{self.market_id}: strategy detached, {released} returned")

    def _push_to_strategy(self) -> None:
        """Forward idle assets above the buffer. Books before calling out."""
        if self.strategy is None:
            return
        surplus = self.state.idle - self.idle_buffer
        if surplus <= 0 or surplus < max(self.min_strategy_deposit, 1):
            return

        self.state.idle -= surplus
        self.state.strategy_assets += surplus
        self._strategy_deposit(self.strategy, surplus)
        logger.debug(f"{self.market_id}: forwarded {surplus} to strategy")

    def _ensure_idle(self, amount: int) -> None:
        """Pull from the strategy until ``amount`` is held idle."""
        if self.state.idle >= amount:
            return
        needed = amount - self.state.idle
        if self.strategy is None:
            raise CouldNotWithdrawFromStrategyError(self.market_id, needed, 0)

        released = self._strategy_withdraw(self.strategy, needed)
        self.state.idle += released
        self.state.strategy_assets = max(0, self.state.strategy_assets - released)
        logger.debug(f"{self.market_id}: pulled {released} of {needed} from strategy")

        if released < needed:
            logger.warning(f"{self.market_id}: strategy short by {needed - released}")
            raise CouldNotWithdrawFromStrategyError(self.market_id, needed, released)

    # Strategies that do not checkpoint themselves keep whatever moved, so a
    # rollback has to move it back for the books to match their balance.

    def _strategy_deposit(self, strategy: Strategy, amount: int) -> None:
        strategy.deposit(amount)
        transactions = self.controller.transactions
        if not transactions.is_registered(strategy):
            transactions.on_rollback(lambda: self._return_from_strategy(strategy, amount))

    def _strategy_withdraw(self, strategy: Strategy, amount: int) -> int:
        released = strategy.withdraw(amount)
        transactions = self.controller.transactions
        if released and not transactions.is_registered(strategy):
            transactions.on_rollback(lambda: strategy.deposit(released))
        return released

    def _return_from_strategy(self, strategy: Strategy, amount: int) -> None:
        """Reverse a rolled-back deposit, booking any part the strategy keeps."""
        released = strategy.withdraw(amount)
        kept = amount - released
        if kept <= 0:
            return

        self.state.idle -= kept
        if strategy is self.strategy:
            self.state.strategy_assets += kept
        else:
            logger.warning(f"{self.market_id}: {kept} left in a detached strategy")
        logger.warning(f"{self.market_id}: strategy kept {kept} of a reverted deposit")

    # ========== FEES ==========

    def set_withdraw_fee(self, fee_bps: int) -> None:
        if fee_bps < 0:
            raise LessThanError("withdraw_fee_bps", fee_bps, 0)
        if fee_bps > MAX_WITHDRAW_FEE_BPS:
            raise GreaterThanError("withdraw_fee_bps", fee_bps, MAX_WITHDRAW_FEE_BPS)
        if fee_bps == self.withdraw_fee_bps:
            raise SameValueError("withdraw_fee_bps", fee_bps)
        logger.info(f"{self.market_id}: withdraw fee {self.withdraw_fee_bps} -> {fee_bps} bps")
        self.withdraw_fee_bps = fee_bps

    def set_treasury(self, treasury: str) -> None:
        if not treasury:
            raise ZeroAddressError("treasury")
        if treasury == self.treasury:
            raise SameValueError("treasury", treasury)
        self.treasury = treasury

    # ========== VIEWS ==========

    @property
    def market(self) -> Market:
        return self.controller.markets.get(self.market_id)

    @property
    def paused(self) -> bool:
        """Withdraw gate of this market."""
        return self.market.paused.withdraw

    def total_assets(self) -> int:
        return self.state.total_assets

    @property
    def total_shares(self) -> int:
        return self.shares.total_shares

    def balance_of(self, account: str) -> int:
        return self.shares.balance_of(account)

    def assets_of(self, account: str) -> int:
        return self.convert_to_assets(self.balance_of(account))

    def convert_to_assets(self, shares: int) -> int:
        return self.shares.to_assets_down(shares, self.total_assets())

    def convert_to_shares(self, assets: int) -> int:
        return self.shares.to_shares_down(assets, self.total_assets())

    def exchange_rate(self) -> int:
        """Assets per share (WAD), 1.0 at genesis."""
        if self.shares.total_shares == 0:
            return WAD
        return mul_div_down(self.total_assets(), WAD, self.shares.total_shares)

    def position(self, account: str) -> CollateralPosition:
        shares = self.balance_of(account)
        return CollateralPosition(
            account=account,
            market_id=self.market_id,
            shares=shares,
            assets=self.convert_to_assets(shares),
        )

    def accounts(self) -> Tuple[str, ...]:
        return self.shares.holders()

    # ========== PERSISTENCE ==========

    def to_dict(self) -> dict:
        """Serialize the durable ledger."""
        return {
            "market_id": self.market_id,
            "asset_id": self.asset_id,
            "decimals": self.decimals,
            "treasury": self.treasury,
            "idle_buffer": self.idle_buffer,
            "withdraw_fee_bps": self.withdraw_fee_bps,
            "min_strategy_deposit": self.min_strategy_deposit,
            "state": self.state.to_dict(),
            "shares": self.shares.to_dict(),
        }

    def load_dict(self, data: dict) -> None:
        """Replace the ledger from a serialized snapshot."""
        self.treasury = data.get("treasury")
        self.idle_buffer = int(data.get("idle_buffer", 0))
        self.withdraw_fee_bps = int(data.get("withdraw_fee_bps", self.withdraw_fee_bps))
        self.min_strategy_deposit = int(
            data.get("min_strategy_deposit", self.min_strategy_deposit)
        )
        self.state = VaultState.from_dict(data["state"])
        self.shares = ShareLedger()
        self.shares.load_dict(data.get("shares", {}))
