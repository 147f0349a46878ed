"""Versioned SQL migrations and the migrator that applies them."""
