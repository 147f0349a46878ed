"""Routers mounted by the application factory."""

from inventory_ledger.api.routes.health import router as health_router
from inventory_ledger.api.routes.inventory import router as inventory_router
from inventory_ledger.api.routes.purchase_orders import router as purchase_orders_router

__all__ = [
    "health_router",
    "inventory_router",
    "purchase_orders_router",
]
