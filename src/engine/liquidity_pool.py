"""Liquidity pool: lender shares and interest-accruing debt shares."""

import copy
import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from src.core.constants import INDEX_SCALE, WAD
from src.core.errors import (
    ExcessRepaymentError,
    GreaterThanError,
    InsufficientLiquidityError,
    NotAuthorizedError,
    PausedError,
    SameValueError,
    ZeroAddressError,
    ZeroAmountError,
    ZeroSharesError,
)
from src.core.fixed_point import mul_div_down, mul_div_up
from src.core.interfaces import DebtMarket
from src.core.models import DebtPosition, Market, PoolState
from src.engine.shares import ShareLedger
from src.engine.transaction import transactional
from src.protocols.lending.irm import JumpRateModel

logger = logging.getLogger(__name__)


class LiquidityPool(DebtMarket):
    """
    Pool of one borrowable asset.

    Lenders hold supply shares over ``cash + total_borrows - total_reserves``.
    Borrowers hold debt shares; the amount owed is
    ``debt_shares * borrow_index / INDEX_SCALE``. The borrow index only moves
    forward, by ``index * borrow_rate * elapsed`` on every accrual.

    Borrowing can be paused per market; repayment never can.
    """

    def __init__(
        self,
        controller,
        asset_id: str,
        rate_model: Optional[JumpRateModel] = None,
        decimals: int = 18,
        market_id: Optional[str] = None,
        treasury: Optional[str] = None,
    ):
        """
        Initialize pool.

        Args:
            controller: Controller used for authorization and transactions
            asset_id: Borrowable asset
            rate_model: Interest rate model (default: JumpRateModel())
            decimals: Asset decimals
            market_id: Registry id (default: "L-{asset_id}")
            treasury: Receiver of reserves
        """
        if not asset_id:
            raise ZeroAddressError("asset_id")
        if controller is None:
            raise ZeroAddressError("controller")

        self.controller = controller
        self.asset_id = asset_id
        self.decimals = decimals
        self.market_id = market_id or f"L-{asset_id}"
        self.rate_model = rate_model or JumpRateModel()
        self.treasury = treasury

        self.state = PoolState(last_accrual_timestamp=controller.now())
        self.supply = ShareLedger()
        self.debt_shares: Dict[str, int] = {}
        self.total_debt_shares = 0

        controller.transactions.register(self)

    # ========== TRANSACTION PARTICIPANT ==========

    def checkpoint(self) -> Any:
        return copy.deepcopy(
            (self.state, self.supply, self.debt_shares, self.total_debt_shares, self.treasury)
        )

    def restore(self, snapshot: Any) -> None:
        (
            self.state,
            self.supply,
            self.debt_shares,
            self.total_debt_shares,
            self.treasury,
        ) = snapshot

    # ========== INTEREST ==========

    def _pending_interest(self) -> Tuple[int, int, int]:
        """(borrow_index, interest, reserves_added) as of now, without mutating."""
        state = self.state
        elapsed = self.controller.now() - state.last_accrual_timestamp
        if elapsed <= 0:
            return state.borrow_index, 0, 0

        borrow_rate, _ = self.rate_model.rate(
            state.cash, state.total_borrows, state.total_reserves
        )
        factor = borrow_rate * elapsed
        interest = mul_div_down(state.total_borrows, factor, WAD)
        index = state.borrow_index + mul_div_down(state.borrow_index, factor, WAD)
        reserves_added = mul_div_down(interest, self.rate_model.reserve_factor_wad, WAD)
        return index, interest, reserves_added

    def _accrue(self) -> int:
        now = self.controller.now()
        if now <= self.state.last_accrual_timestamp:
            return 0

        index, interest, reserves_added = self._pending_interest()
        self.state.borrow_index = index
        self.state.total_borrows += interest
        self.state.total_reserves += reserves_added
        self.state.last_accrual_timestamp = now

        if interest:
            logger.debug(
                f"{self.market_id}: accrued {interest} interest, index {index}, "
                f"reserves +{reserves_added}"
            )
        return interest

    @transactional
    def accrue_interest(self) -> int:
        """
        Bring the borrow index up to the current timestamp.

        Idempotent within a timestamp.

        Returns:
            Interest added to total borrows
        """
        return self._accrue()

    # ========== LENDER SIDE ==========

    @transactional
    def deposit(self, account: str, amount: int, receiver: Optional[str] = None) -> int:
        """
        Supply liquidity.

        Returns:
            Supply shares minted (rounded down)
        """
        if amount <= 0:
            raise ZeroAmountError()
        receiver = receiver or account
        self._accrue()
        self.controller.check_deposit(self, receiver, amount)

        shares = self.supply.to_shares_down(amount, self.state.underlying)
        if shares == 0:
            raise ZeroSharesError()

        self.supply.mint(receiver, shares)
        self.state.cash += amount
        logger.info(f"{self.market_id}: {account} supplied {amount} for {shares} shares")
        return shares

    @transactional
    def mint(self, account: str, shares: int, receiver: Optional[str] = None) -> int:
        """
        Mint an exact amount of supply shares.

        Returns:
            Assets pulled in (rounded up)
        """
        if shares <= 0:
            raise ZeroSharesError()
        receiver = receiver or account
        self._accrue()

        amount = self.supply.to_assets_up(shares, self.state.underlying)
        self.controller.check_deposit(self, receiver, amount)

        self.supply.mint(receiver, shares)
        self.state.cash += amount
        logger.info(f"{self.market_id}: {account} supplied {amount} for {shares} shares")
        return amount

    @transactional
    def withdraw(
        self,
        account: str,
        amount: int,
        to: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> int:
        """
        Withdraw supplied liquidity. Never paused, bounded by cash.

        Returns:
            Supply shares burned (rounded up)
        """
        if amount <= 0:
            raise ZeroAmountError()
        owner = owner or account
        self._accrue()

        shares = self.supply.to_shares_up(amount, self.state.underlying)
        self._take_liquidity(account, owner, shares, amount)
        logger.info(f"{self.market_id}: {owner} withdrew {amount} to {to or account}")
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
        Burn supply shares.

        Returns:
            Assets withdrawn (rounded down)
        """
        if shares <= 0:
            raise ZeroSharesError()
        owner = owner or account
        self._accrue()
        return self._redeem(account, owner, shares, to)

    @transactional
    def withdraw_all(self, account: str, to: Optional[str] = None) -> int:
        """Redeem every supply share of the account."""
        self._accrue()
        shares = self.supply.balance_of(account)
        if shares == 0:
            return 0
        return self._redeem(account, account, shares, to)

    def _redeem(self, account: str, owner: str, shares: int, to: Optional[str]) -> int:
        amount = self.supply.to_assets_down(shares, self.state.underlying)
        if amount == 0:
            raise ZeroAmountError("assets")
        self._take_liquidity(account, owner, shares, amount)
        logger.info(f"{self.market_id}: {owner} redeemed {shares} shares for {amount}")
        return amount

    def _take_liquidity(self, account: str, owner: str, shares: int, amount: int) -> None:
        if amount > self.state.cash:
            raise InsufficientLiquidityError(self.market_id, amount, self.state.cash)
        self.supply.spend_allowance(owner, account, shares)
        self.supply.burn(owner, shares)
        self.state.cash -= amount

    def approve(self, owner: str, spender: str, shares: int) -> None:
        """Allow spender to withdraw up to ``shares`` of owner's supply."""
        if not spender:
            raise ZeroAddressError("spender")
        self.supply.approve(owner, spender, shares)

    # ========== BORROWER SIDE ==========

    @transactional
    def borrow(self, account: str, amount: int) -> int:
        """
        Borrow assets against collateral.

        Raises:
            PausedError: Borrowing is paused on this market
            InsufficientLiquidityError: amount exceeds cash
            InsufficientCollateralError: Projected health factor < 1

        Returns:
            Debt shares minted (rounded up)
        """
        if amount <= 0:
            raise ZeroAmountError()
        self._accrue()

        market = self.market
        if market.paused.borrow or not market.active:
            raise PausedError(self.market_id, "borrow")
        if amount > self.state.cash:
            raise InsufficientLiquidityError(self.market_id, amount, self.state.cash)

        index = self.state.borrow_index
        shares = mul_div_up(amount, INDEX_SCALE, index)
        held = self.debt_shares.get(account, 0)
        # Owed debt grows by the rounded share amount, not the raw amount
        added = mul_div_up(held + shares, index, INDEX_SCALE) - self._owed(account, index)
        self.controller.authorize_borrow(account, self, added)

        self.debt_shares[account] = self.debt_shares.get(account, 0) + shares
        self.total_debt_shares += shares
        self.state.cash -= amount
        self.state.total_borrows += amount

        logger.info(f"{self.market_id}: {account} borrowed {amount} ({shares} debt shares)")
        return shares

    @transactional
    def repay(self, account: str, amount: int, payer: Optional[str] = None) -> int:
        """
        Repay part or all of an account's debt. Never paused.

        Raises:
            ExcessRepaymentError: amount exceeds the owed debt

        Returns:
            Debt shares burned
        """
        if amount <= 0:
            raise ZeroAmountError()
        self._accrue()
        return self._repay(account, amount, payer or account)

    @transactional
    def repay_all(self, account: str, payer: Optional[str] = None) -> int:
        """
        Repay the full debt of an account. Never paused.

        Returns:
            Amount repaid (0 when the account has no debt)
        """
        self._accrue()
        owed = self._owed(account, self.state.borrow_index)
        if owed == 0:
            return 0
        self._repay(account, owed, payer or account)
        return owed

    @transactional
    def seize_debt(self, caller: Any, liquidator: str, account: str, amount: int) -> int:
        """
        Repay an account's debt with the liquidator's funds.

        Only the controller may call this, from inside a liquidation.

        Returns:
            Debt shares burned
        """
        if caller is not self.controller:
            raise NotAuthorizedError("seize debt")
        if amount <= 0:
            raise ZeroAmountError()
        self._accrue()
        return self._repay(account, amount, liquidator)

    def _repay(self, account: str, amount: int, payer: str) -> int:
        index = self.state.borrow_index
        owed = self._owed(account, index)
        if amount > owed:
            raise ExcessRepaymentError(account, amount, owed)

        if amount == owed:
            shares = self.debt_shares[account]
        else:
            shares = mul_div_down(amount, INDEX_SCALE, index)
            if shares == 0:
                raise ZeroSharesError("debt_shares")

        remaining = self.debt_shares[account] - shares
        if remaining:
            self.debt_shares[account] = remaining
        else:
            del self.debt_shares[account]
        self.total_debt_shares -= shares
        self.state.cash += amount
        self.state.total_borrows = max(0, self.state.total_borrows - amount)

        logger.info(f"{self.market_id}: {payer} repaid {amount} of {account}'s debt")
        return shares

    def _owed(self, account: str, index: int) -> int:
        return mul_div_up(self.debt_shares.get(account, 0), index, INDEX_SCALE)

    # ========== RESERVES ==========

    def set_treasury(self, treasury: str) -> None:
        if not treasury:
            raise ZeroAddressError("treasury")
        if treasury == self.treasury:
            raise SameValueError("treasury", treasury)
        logger.info(f"{self.market_id}: treasury {self.treasury} -> {treasury}")
        self.treasury = treasury

    @transactional
    def reduce_reserves(self, amount: int) -> int:
        """
        Send reserves to the treasury.

        Returns:
            Reserves remaining
        """
        if amount <= 0:
            raise ZeroAmountError()
        if not self.treasury:
            raise ZeroAddressError("treasury")
        self._accrue()
        if amount > self.state.total_reserves:
            raise GreaterThanError("reduce_amount", amount, self.state.total_reserves)
        if amount > self.state.cash:
            raise InsufficientLiquidityError(self.market_id, amount, self.state.cash)

        self.state.total_reserves -= amount
        self.state.cash -= amount
        logger.info(f"{self.market_id}: sent {amount} reserves to {self.treasury}")
        return self.state.total_reserves

    @transactional
    def set_rate_model(self, rate_model: JumpRateModel) -> None:
        """Swap the rate model after accruing at the old rates."""
        if rate_model is None:
            raise ZeroAddressError("rate_model")
        if rate_model is self.rate_model:
            raise SameValueError("rate_model")
        self._accrue()
        self.rate_model = rate_model
        logger.info(f"{self.market_id}: new rate model")

    # ========== VIEWS ==========

    @property
    def market(self) -> Market:
        return self.controller.markets.get(self.market_id)

    @property
    def paused(self) -> bool:
        """Borrow gate of this market."""
        return self.market.paused.borrow

    def snapshot(self) -> PoolState:
        """Pool state with pending interest applied."""
        index, interest, reserves_added = self._pending_interest()
        return PoolState(
            cash=self.state.cash,
            total_borrows=self.state.total_borrows + interest,
            total_reserves=self.state.total_reserves + reserves_added,
            borrow_index=index,
            last_accrual_timestamp=max(self.controller.now(), self.state.last_accrual_timestamp),
        )

    @property
    def cash(self) -> int:
        return self.state.cash

    @property
    def borrow_index(self) -> int:
        return self.state.borrow_index

    def current_borrow_index(self) -> int:
        return self._pending_interest()[0]

    def debt_of(self, account: str) -> int:
        return self._owed(account, self.current_borrow_index())

    def debt_shares_of(self, account: str) -> int:
        return self.debt_shares.get(account, 0)

    def position(self, account: str) -> DebtPosition:
        return DebtPosition(
            account=account,
            market_id=self.market_id,
            debt_shares=self.debt_shares_of(account),
            owed=self.debt_of(account),
        )

    def accounts(self) -> Tuple[str, ...]:
        return tuple(a for a, s in self.debt_shares.items() if s > 0)

    def balance_of(self, account: str) -> int:
        """Supply shares of a lender."""
        return self.supply.balance_of(account)

    def total_assets(self) -> int:
        """Lender-owned assets including pending interest."""
        return self.snapshot().underlying

    def convert_to_assets(self, shares: int) -> int:
        return self.supply.to_assets_down(shares, self.total_assets())

    def convert_to_shares(self, assets: int) -> int:
        return self.supply.to_shares_down(assets, self.total_assets())

    def exchange_rate(self) -> int:
        """Assets per supply share (WAD), 1.0 at genesis."""
        if self.supply.total_shares == 0:
            return WAD
        return mul_div_down(self.total_assets(), WAD, self.supply.total_shares)

    def utilization(self) -> int:
        state = self.snapshot()
        return self.rate_model.utilization(state.cash, state.total_borrows, state.total_reserves)

    def borrow_rate_per_second(self) -> int:
        state = self.snapshot()
        return self.rate_model.rate(state.cash, state.total_borrows, state.total_reserves)[0]

    def supply_rate_per_second(self) -> int:
        state = self.snapshot()
        return self.rate_model.rate(state.cash, state.total_borrows, state.total_reserves)[1]

    def borrow_apr(self) -> Decimal:
        return self.rate_model.annualize(self.borrow_rate_per_second())

    def supply_apr(self) -> Decimal:
        return self.rate_model.annualize(self.supply_rate_per_second())

    # ========== PERSISTENCE ==========

    def to_dict(self) -> dict:
        """Serialize the durable ledger."""
        return {
            "market_id": self.market_id,
            "asset_id": self.asset_id,
            "decimals": self.decimals,
            "treasury": self.treasury,
            "state": self.state.to_dict(),
            "supply": self.supply.to_dict(),
            "debt_shares": dict(self.debt_shares),
            "total_debt_shares": self.total_debt_shares,
        }

    def load_dict(self, data: dict) -> None:
        """Replace the ledger from a serialized snapshot."""
        self.treasury = data.get("treasury")
        self.state = PoolState.from_dict(data["state"])
        self.supply = ShareLedger()
        self.supply.load_dict(data.get("supply", {}))
        self.debt_shares = {
            a: int(s) for a, s in data.get("debt_shares", {}).items() if int(s) > 0
        }
        self.total_debt_shares = int(
            data.get("total_debt_shares", sum(self.debt_shares.values()))
        )
