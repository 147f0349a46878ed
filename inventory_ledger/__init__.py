"""Inventory ledger service: purchase-order completion, stock ledger and valuation."""

__version__ = "1.0.0"
