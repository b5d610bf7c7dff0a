"""Share balances and ERC4626-style conversions."""

from typing import Dict, Tuple

from src.core.errors import InsufficientAllowanceError, InsufficientCollateralError
from src.core.fixed_point import mul_div_down, mul_div_up


class ShareLedger:
    """
    Per-account share balances with a running total.

    Conversions take the pool's current total assets so the same ledger
    serves collateral vaults and the lender side of liquidity pools.
    Rounding always favors the pool:

    - assets -> shares minted: down
    - shares -> assets paid out: down
    - assets -> shares burned: up
    - shares -> assets pulled in: up
    """

    def __init__(self):
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self.total_shares = 0

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def holders(self) -> Tuple[str, ...]:
        return tuple(a for a, s in self.balances.items() if s > 0)

    # Conversions

    def to_shares_down(self, assets: int, total_assets: int) -> int:
        if self.total_shares == 0:
            return assets
        if total_assets == 0:
            # Outstanding shares are worth nothing; minting would dilute the depositor
            return 0
        return mul_div_down(assets, self.total_shares, total_assets)

    def to_shares_up(self, assets: int, total_assets: int) -> int:
        if self.total_shares == 0 or total_assets == 0:
            return assets
        return mul_div_up(assets, self.total_shares, total_assets)

    def to_assets_down(self, shares: int, total_assets: int) -> int:
        if self.total_shares == 0:
            return shares
        return mul_div_down(shares, total_assets, self.total_shares)

    def to_assets_up(self, shares: int, total_assets: int) -> int:
        if self.total_shares == 0:
            return shares
        return mul_div_up(shares, total_assets, self.total_shares)

    # Mutations

    def mint(self, account: str, shares: int) -> None:
        self.balances[account] = self.balance_of(account) + shares
        self.total_shares += shares

    def burn(self, account: str, shares: int) -> None:
        balance = self.balance_of(account)
        if shares > balance:
            raise InsufficientCollateralError(
                account, f"burning {shares} shares with balance {balance}"
            )
        remaining = balance - shares
        if remaining:
            self.balances[account] = remaining
        else:
            self.balances.pop(account, None)
        self.total_shares -= shares

    def move(self, sender: str, receiver: str, shares: int) -> None:
        self.burn(sender, shares)
        self.mint(receiver, shares)

    def approve(self, owner: str, spender: str, shares: int) -> None:
        if shares:
            self.allowances[(owner, spender)] = shares
        else:
            self.allowances.pop((owner, spender), None)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    def spend_allowance(self, owner: str, spender: str, shares: int) -> None:
        if owner == spender:
            return
        current = self.allowance(owner, spender)
        if shares > current:
            raise InsufficientAllowanceError(owner, spender, shares, current)
        self.approve(owner, spender, current - shares)

    # Persistence

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "total_shares": self.total_shares,
            "balances": dict(self.balances),
            "allowances": [
                {"owner": o, "spender": s, "shares": v}
                for (o, s), v in self.allowances.items()
            ],
        }

    def load_dict(self, data: dict) -> None:
        """Replace balances from a serialized snapshot."""
        self.balances = {a: int(s) for a, s in data.get("balances", {}).items() if int(s) > 0}
        self.allowances = {
            (e["owner"], e["spender"]): int(e["shares"]) for e in data.get("allowances", [])
        }
        self.total_shares = int(data.get("total_shares", sum(self.balances.values())))
