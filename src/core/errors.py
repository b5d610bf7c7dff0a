"""Protocol errors.

Every error aborts the whole operation: the transaction manager restores all
ledger state touched during the call before the exception leaves the engine.
``code`` is the stable taxonomy name reported in ``TxResult.error_code``.
"""

from typing import Any, Optional


class ProtocolError(Exception):
    """Base error class for protocol errors"""

    code = "ProtocolError"


class ZeroAmountError(ProtocolError):
    """Amount argument is zero"""

    code = "ZeroAmount"

    def __init__(self, field: str = "amount"):
        self.field = field
        super().__init__(f"{field} must be greater than zero")


class ZeroAddressError(ProtocolError):
    """Account, asset or collaborator reference is empty"""

    code = "ZeroAddress"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} must not be empty")


class ZeroSharesError(ProtocolError):
    """Operation would mint or burn zero shares"""

    code = "ZeroShares"

    def __init__(self, field: str = "shares"):
        self.field = field
        super().__init__(f"{field} resolves to zero shares")


class SameValueError(ProtocolError):
    """Setter called with the value already in place"""

    code = "SameValue"

    def __init__(self, field: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(f"{field} is already {value!r}")


class GreaterThanError(ProtocolError):
    """Value exceeds its upper bound"""

    code = "GreaterThan"

    def __init__(self, field: str, value: Any = None, bound: Any = None):
        self.field = field
        self.value = value
        self.bound = bound
        super().__init__(f"{field} {value!r} is greater than {bound!r}")


class LessThanError(ProtocolError):
    """Value is below its lower bound"""

    code = "LessThan"

    def __init__(self, field: str, value: Any = None, bound: Any = None):
        self.field = field
        self.value = value
        self.bound = bound
        super().__init__(f"{field} {value!r} is less than {bound!r}")


class PausedError(ProtocolError):
    """Market gate closed for this action"""

    code = "Paused"

    def __init__(self, market_id: str, action: str):
        self.market_id = market_id
        self.action = action
        super().__init__(f"{action} is paused on market {market_id}")


class InsufficientLiquidityError(ProtocolError):
    """Pool cash cannot cover the requested amount"""

    code = "InsufficientLiquidity"

    def __init__(self, market_id: str, requested: int, available: int):
        self.market_id = market_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"{market_id}: requested {requested} but only {available} available"
        )


class InsufficientCollateralError(ProtocolError):
    """Operation would leave the account unhealthy or exceeds its balance"""

    code = "InsufficientCollateral"

    def __init__(self, account: str, reason: str):
        self.account = account
        self.reason = reason
        super().__init__(f"Insufficient collateral for {account}: {reason}")


class ExcessRepaymentError(ProtocolError):
    """Repayment exceeds outstanding debt"""

    code = "ExcessRepayment"

    def __init__(self, account: str, amount: int, owed: int):
        self.account = account
        self.amount = amount
        self.owed = owed
        super().__init__(f"Repayment {amount} exceeds debt {owed} of {account}")


class ExcessSeizeError(ProtocolError):
    """Liquidation would seize more collateral than the account holds"""

    code = "ExcessSeize"

    def __init__(self, account: str, shares: int, available: int):
        self.account = account
        self.shares = shares
        self.available = available
        super().__init__(
            f"Seizing {shares} shares exceeds {available} held by {account}"
        )


class HealthyPositionError(ProtocolError):
    """Liquidation attempted on a solvent account"""

    code = "HealthyPosition"

    def __init__(self, account: str, health: Any = None):
        self.account = account
        self.health = health
        super().__init__(f"Account {account} is healthy ({health})")


class StalePriceError(ProtocolError):
    """No price feed updated within the staleness window"""

    code = "StalePrice"

    def __init__(self, asset_id: str, updated_at: Optional[int], max_staleness: int):
        self.asset_id = asset_id
        self.updated_at = updated_at
        self.max_staleness = max_staleness
        super().__init__(
            f"Price for {asset_id} is stale (updated at {updated_at}, "
            f"max staleness {max_staleness}s)"
        )


class InvalidPriceError(ProtocolError):
    """Price feed reported a non-positive price"""

    code = "InvalidPrice"

    def __init__(self, asset_id: str, price: int):
        self.asset_id = asset_id
        self.price = price
        super().__init__(f"Invalid price {price} for {asset_id}")


class UnknownMarketError(ProtocolError):
    """Market is not listed in the registry"""

    code = "UnknownMarket"

    def __init__(self, market_id: str):
        self.market_id = market_id
        super().__init__(f"Unknown market {market_id}")


class MarketAlreadyListedError(ProtocolError):
    """Market id already registered"""

    code = "MarketAlreadyListed"

    def __init__(self, market_id: str):
        self.market_id = market_id
        super().__init__(f"Market {market_id} is already listed")


class MissingPriceFeedError(ProtocolError):
    """No price feed registered for the asset"""

    code = "MissingPriceFeed"

    def __init__(self, asset_id: str):
        self.asset_id = asset_id
        super().__init__(f"No price feed for {asset_id}")


class NotAuthorizedError(ProtocolError):
    """Caller is not allowed to invoke this entry point"""

    code = "NotAuthorized"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Caller is not allowed to {action}")


class ReentrantCallError(ProtocolError):
    """Pool re-entered while an operation on it is in progress"""

    code = "ReentrantCall"

    def __init__(self, market_id: str):
        self.market_id = market_id
        super().__init__(f"Reentrant call into {market_id}")


class InsufficientAllowanceError(ProtocolError):
    """Spender allowance below the shares requested"""

    code = "InsufficientAllowance"

    def __init__(self, owner: str, spender: str, shares: int, allowance: int):
        self.owner = owner
        self.spender = spender
        self.shares = shares
        self.allowance = allowance
        super().__init__(
            f"{spender} may move {allowance} shares of {owner}, requested {shares}"
        )


class CouldNotWithdrawFromStrategyError(ProtocolError):
    """Strategy returned too little to fund a withdrawal"""

    code = "CouldNotWithdrawFromStrategy"

    def __init__(self, market_id: str, needed: int, available: int):
        self.market_id = market_id
        self.needed = needed
        self.available = available
        super().__init__(
            f"{market_id}: withdrawal needs {needed}, only {available} could be freed"
        )


class StrategyStillHasDepositsError(ProtocolError):
    """Strategy could not be drained before being detached"""

    code = "StrategyStillHasDeposits"

    def __init__(self, market_id: str, remaining: int):
        self.market_id = market_id
        self.remaining = remaining
        super().__init__(f"{market_id}: strategy still holds {remaining}")


class NotSameAssetError(ProtocolError):
    """Strategy manages a different asset than the pool"""

    code = "NotSameAsset"

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Strategy asset {actual} does not match pool asset {expected}")


class HealthNotImprovedError(ProtocolError):
    """Liquidation would leave the account less healthy with debt remaining"""

    code = "HealthNotImproved"

    def __init__(self, account: str, before: Any, after: Any):
        self.account = account
        self.before = before
        self.after = after
        super().__init__(
            f"Liquidation of {account} lowers health from {before} to {after}"
        )
