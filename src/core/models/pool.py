"""Pool ledger state models."""

from dataclasses import dataclass

from src.core.constants import INDEX_SCALE


@dataclass
class PoolState:
    """Debt-side state of a liquidity pool."""

    cash: int = 0
    total_borrows: int = 0
    total_reserves: int = 0
    borrow_index: int = INDEX_SCALE
    last_accrual_timestamp: int = 0

    @property
    def underlying(self) -> int:
        """Assets owned by lenders: cash + borrows - reserves."""
        return self.cash + self.total_borrows - self.total_reserves

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "cash": self.cash,
            "total_borrows": self.total_borrows,
            "total_reserves": self.total_reserves,
            "borrow_index": self.borrow_index,
            "last_accrual_timestamp": self.last_accrual_timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PoolState":
        """Deserialize from dictionary."""
        return cls(
            cash=int(data["cash"]),
            total_borrows=int(data["total_borrows"]),
            total_reserves=int(data["total_reserves"]),
            borrow_index=int(data["borrow_index"]),
            last_accrual_timestamp=int(data["last_accrual_timestamp"]),
        )


@dataclass
class VaultState:
    """Asset-side state of a collateral pool."""

    idle: int = 0  # Held by the pool
    strategy_assets: int = 0  # Booked as held by the strategy
    collected_fees: int = 0  # Withdrawal fees owed to the treasury

    @property
    def total_assets(self) -> int:
        return self.idle + self.strategy_assets

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "idle": self.idle,
            "strategy_assets": self.strategy_assets,
            "collected_fees": self.collected_fees,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "VaultState":
        """Deserialize from dictionary."""
        return cls(
            idle=int(data["idle"]),
            strategy_assets=int(data["strategy_assets"]),
            collected_fees=int(data.get("collected_fees", 0)),
        )
