"""SQLAlchemy models for the ledger store."""

from .ledger import Base, LedgerRow, LedgerTable

__all__ = [
    "Base",
    "LedgerRow",
    "LedgerTable",
]
