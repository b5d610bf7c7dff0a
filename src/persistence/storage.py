"""Ledger snapshot storage."""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class DecimalEncoder(json.JSONEncoder):
    """JSON encoder that handles Decimal types."""

    def default(self, obj):
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class LedgerStorage:
    """
    Persistent storage for market configuration and pool ledgers.

    Uses JSON files for simplicity and human-readability. Integers are
    written as JSON numbers, which Python reads back without precision loss.
    Prices are never stored.

    Directory structure:
        storage_dir/
            markets.json
            pools/
                {market_id}.json
    """

    def __init__(self, storage_dir: Optional[Path] = None, settings: Optional[Settings] = None):
        """
        Initialize storage.

        Args:
            storage_dir: Base directory for storage (default: settings.storage_dir)
            settings: Engine settings
        """
        if storage_dir is None:
            storage_dir = (settings or get_settings()).ensure_storage_dir()

        self.storage_dir = Path(storage_dir)
        self.markets_file = self.storage_dir / "markets.json"
        self.pools_dir = self.storage_dir / "pools"

        self.pools_dir.mkdir(parents=True, exist_ok=True)

    # Controller

    def save(self, controller) -> List[str]:
        """
        Save market configuration and every listed pool's ledger.

        Returns:
            Market ids written
        """
        saved_at = datetime.now(timezone.utc)

        data = controller.markets.to_dict()
        data["_saved_at"] = saved_at
        self._write(self.markets_file, data)

        written = []
        for market in controller.markets:
            pool = controller.pool(market.market_id)
            self.save_pool(pool, saved_at)
            written.append(market.market_id)

        logger.info(f"Saved {len(written)} markets to {self.storage_dir}")
        return written

    def load(self, controller) -> List[str]:
        """
        Restore configuration and ledgers into an already wired controller.

        Pools must be listed under the same market ids before loading;
        snapshots of markets that are not listed are ignored.

        Returns:
            Market ids restored
        """
        if not self.markets_file.exists():
            logger.warning(f"No market snapshot in {self.storage_dir}")
            return []

        data = self._read(self.markets_file)
        listed = {m.market_id for m in controller.markets}
        data["markets"] = [m for m in data.get("markets", []) if m["market_id"] in listed]

        # A malformed pool file leaves configuration and every ledger untouched
        restored = []
        with controller.transactions.atomic():
            controller.markets.load_dict(data)
            for market_id in sorted(listed):
                if self.load_pool(controller.pool(market_id)):
                    restored.append(market_id)

        logger.info(f"Restored {len(restored)} pool ledgers from {self.storage_dir}")
        return restored

    # Pools

    def save_pool(self, pool, saved_at: Optional[datetime] = None) -> Path:
        """Write one pool's durable ledger."""
        file_path = self.pools_dir / f"{pool.market_id}.json"

        data = pool.to_dict()
        data["_saved_at"] = saved_at or datetime.now(timezone.utc)
        self._write(file_path, data)

        logger.debug(f"Saved pool ledger: {pool.market_id}")
        return file_path

    def load_pool(self, pool) -> bool:
        """
        Load one pool's ledger.

        Returns:
            True if a snapshot was found and loaded
        """
        file_path = self.pools_dir / f"{pool.market_id}.json"

        if not file_path.exists():
            logger.warning(f"Pool ledger not found: {pool.market_id}")
            return False

        data = self._read(file_path)
        data.pop("_saved_at", None)
        pool.load_dict(data)
        return True

    def list_pools(self) -> List[Dict[str, Any]]:
        """
        List saved pool ledgers.

        Returns:
            List of summaries (market id, asset, saved_at)
        """
        pools = []
        for file_path in self.pools_dir.glob("*.json"):
            data = self._read(file_path)
            pools.append({
                "market_id": data.get("market_id", file_path.stem),
                "asset_id": data.get("asset_id"),
                "saved_at": data.get("_saved_at"),
            })

        pools.sort(key=lambda x: x["market_id"])
        return pools

    def delete_pool(self, market_id: str) -> bool:
        """
        Delete a pool ledger.

        Returns:
            True if deleted, False if not found
        """
        file_path = self.pools_dir / f"{market_id}.json"

        if file_path.exists():
            file_path.unlink()
            logger.info(f"Deleted pool ledger: {market_id}")
            return True

        return False

    # Helper Methods

    @staticmethod
    def _write(file_path: Path, data: Dict[str, Any]) -> None:
        with open(file_path, "w") as f:
            json.dump(data, f, cls=DecimalEncoder, indent=2)

    @staticmethod
    def _read(file_path: Path) -> Dict[str, Any]:
        with open(file_path, "r") as f:
            return json.load(f)
