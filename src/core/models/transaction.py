"""Transaction result data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def _utcnow() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class TxStatus(Enum):
    """Outcome of an engine operation."""

    SUCCESS = "success"
    REVERTED = "reverted"


@dataclass
class TxResult:
    """Tagged result of an atomic engine operation."""

    operation: str
    status: TxStatus
    value: Any = None
    executed_at: datetime = field(default_factory=_utcnow)

    # Failure context
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        """Check if the operation committed."""
        return self.status == TxStatus.SUCCESS

    @property
    def display_value(self) -> str:
        """Format outcome for display."""
        if not self.is_ok:
            return f"REVERTED ({self.error_code})"
        return str(self.value)
