"""Ledger persistence."""

from .storage import DecimalEncoder, LedgerStorage

__all__ = ["DecimalEncoder", "LedgerStorage"]
