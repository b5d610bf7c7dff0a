"""Market configuration models."""

from dataclasses import dataclass, field
from enum import Enum

from src.core.constants import UNLIMITED


class MarketKind(Enum):
    """Role a market plays in the protocol."""

    COLLATERAL = "collateral"
    LIQUIDITY = "liquidity"


@dataclass
class PauseFlags:
    """Market-level gates on new withdraw / borrow calls."""

    withdraw: bool = False
    borrow: bool = False

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {"withdraw": self.withdraw, "borrow": self.borrow}

    @classmethod
    def from_dict(cls, data: dict) -> "PauseFlags":
        """Deserialize from dictionary."""
        return cls(
            withdraw=bool(data.get("withdraw", False)),
            borrow=bool(data.get("borrow", False)),
        )


@dataclass
class Market:
    """
    Listed market configuration.

    Collateral markets carry the risk parameters; liquidity markets only use
    the borrow gate. All ratios are basis points (10000 = 100%).
    """

    market_id: str
    asset_id: str
    kind: MarketKind

    # Risk parameters (collateral markets)
    collateral_factor_bps: int = 0
    liquidation_threshold_bps: int = 0
    liquidation_bonus_bps: int = 0

    # Gates
    paused: PauseFlags = field(default_factory=PauseFlags)
    deposit_limit: int = UNLIMITED
    user_deposit_limit: int = UNLIMITED
    active: bool = True

    @property
    def is_collateral(self) -> bool:
        """Check if this is a collateral market."""
        return self.kind == MarketKind.COLLATERAL

    @property
    def has_deposit_limit(self) -> bool:
        return self.deposit_limit != UNLIMITED

    @property
    def has_user_deposit_limit(self) -> bool:
        return self.user_deposit_limit != UNLIMITED

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "market_id": self.market_id,
            "asset_id": self.asset_id,
            "kind": self.kind.value,
            "collateral_factor_bps": self.collateral_factor_bps,
            "liquidation_threshold_bps": self.liquidation_threshold_bps,
            "liquidation_bonus_bps": self.liquidation_bonus_bps,
            "paused": self.paused.to_dict(),
            "deposit_limit": self.deposit_limit,
            "user_deposit_limit": self.user_deposit_limit,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Market":
        """Deserialize from dictionary."""
        return cls(
            market_id=data["market_id"],
            asset_id=data["asset_id"],
            kind=MarketKind(data["kind"]),
            collateral_factor_bps=int(data.get("collateral_factor_bps", 0)),
            liquidation_threshold_bps=int(data.get("liquidation_threshold_bps", 0)),
            liquidation_bonus_bps=int(data.get("liquidation_bonus_bps", 0)),
            paused=PauseFlags.from_dict(data.get("paused", {})),
            deposit_limit=int(data.get("deposit_limit", UNLIMITED)),
            user_deposit_limit=int(data.get("user_deposit_limit", UNLIMITED)),
            active=bool(data.get("active", True)),
        )
