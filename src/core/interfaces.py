"""Capability interfaces.

The controller depends only on these: collateral pools are ``Vault``s,
liquidity pools are ``DebtMarket``s and the oracle is a ``PriceSource``.
External collaborators (price feeds, yield strategies) are structural
``Protocol``s so any object with the right methods can be plugged in.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Protocol, Tuple, runtime_checkable

from src.core.models import CollateralPosition, DebtPosition, PriceQuote


class PriceSource(ABC):
    """Read-only price access."""

    @abstractmethod
    def price(self, asset_id: str) -> PriceQuote:
        """Return the selected quote for an asset or raise."""
        ...

    @abstractmethod
    def price_wad(self, asset_id: str) -> int:
        """Return the selected price normalized to 18 decimals."""
        ...

    @abstractmethod
    def value_of(self, asset_id: str, amount: int, decimals: int, round_up: bool = False) -> int:
        """Value an asset amount in normalized price units."""
        ...

    @abstractmethod
    def feeds(self, asset_id: str) -> List[Any]:
        """Feeds registered for an asset."""
        ...


class Vault(ABC):
    """Share vault holding collateral."""

    market_id: str
    asset_id: str
    decimals: int

    @abstractmethod
    def deposit(self, account: str, amount: int, receiver: Optional[str] = None) -> int:
        """Deposit assets, return shares minted."""
        ...

    @abstractmethod
    def mint(self, account: str, shares: int, receiver: Optional[str] = None) -> int:
        """Mint exact shares, return assets pulled."""
        ...

    @abstractmethod
    def withdraw(
        self,
        account: str,
        amount: int,
        to: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> int:
        """Withdraw assets, return shares burned."""
        ...

    @abstractmethod
    def redeem(
        self,
        account: str,
        shares: int,
        to: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> int:
        """Burn shares, return assets withdrawn."""
        ...

    @abstractmethod
    def withdraw_all(self, account: str, to: Optional[str] = None) -> int:
        """Redeem every share of the account, return assets withdrawn."""
        ...

    @abstractmethod
    def total_assets(self) -> int:
        """Assets owned by share holders."""
        ...

    @abstractmethod
    def balance_of(self, account: str) -> int:
        """Shares held by an account."""
        ...

    @abstractmethod
    def convert_to_assets(self, shares: int) -> int:
        """Assets represented by shares (rounded down)."""
        ...

    @abstractmethod
    def convert_to_shares(self, assets: int) -> int:
        """Shares represented by assets (rounded down)."""
        ...

    @abstractmethod
    def position(self, account: str) -> CollateralPosition:
        ...

    @abstractmethod
    def accounts(self) -> Tuple[str, ...]:
        """Accounts holding a non-zero share balance."""
        ...

    @abstractmethod
    def seize(self, caller: Any, account: str, liquidator: str, shares: int) -> None:
        """Move shares from account to liquidator (controller only)."""
        ...


class DebtMarket(ABC):
    """Interest-accruing debt ledger."""

    market_id: str
    asset_id: str
    decimals: int

    @abstractmethod
    def accrue_interest(self) -> int:
        """Bring the borrow index up to date, return interest accrued."""
        ...

    @abstractmethod
    def borrow(self, account: str, amount: int) -> int:
        """Borrow assets, return debt shares minted."""
        ...

    @abstractmethod
    def repay(self, account: str, amount: int, payer: Optional[str] = None) -> int:
        """Repay debt, return debt shares burned."""
        ...

    @abstractmethod
    def repay_all(self, account: str, payer: Optional[str] = None) -> int:
        """Repay the full debt, return amount repaid."""
        ...

    @abstractmethod
    def total_assets(self) -> int:
        """Assets owned by lenders, pending interest included."""
        ...

    @abstractmethod
    def balance_of(self, account: str) -> int:
        """Supply shares held by a lender."""
        ...

    @abstractmethod
    def convert_to_assets(self, shares: int) -> int:
        """Assets represented by supply shares (rounded down)."""
        ...

    @abstractmethod
    def debt_of(self, account: str) -> int:
        """Owed amount including pending interest (rounded up)."""
        ...

    @abstractmethod
    def position(self, account: str) -> DebtPosition:
        ...

    @abstractmethod
    def accounts(self) -> Tuple[str, ...]:
        """Accounts holding non-zero debt shares."""
        ...

    @abstractmethod
    def seize_debt(self, caller: Any, liquidator: str, account: str, amount: int) -> int:
        """Repay an account's debt on behalf of a liquidator (controller only)."""
        ...


@runtime_checkable
class PriceFeed(Protocol):
    """External price feed (round based)."""

    decimals: int

    def latest_round_data(self) -> Tuple[int, int, int]:
        """Return (round_id, answer, updated_at)."""
        ...


@runtime_checkable
class Strategy(Protocol):
    """External yield strategy holding idle pool funds."""

    asset_id: str

    def deposit(self, amount: int) -> None:
        ...

    def withdraw(self, amount: int) -> int:
        """Withdraw up to amount, return the amount actually released."""
        ...

    def balance(self) -> int:
        ...


class Transactional(Protocol):
    """Participant whose state is checkpointed by the transaction manager."""

    def checkpoint(self) -> Any:
        ...

    def restore(self, snapshot: Any) -> None:
        ...
