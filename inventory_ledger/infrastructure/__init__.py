"""Infrastructure layer implementations."""

from inventory_ledger.infrastructure import locking, storage

__all__ = ["storage", "locking"]
