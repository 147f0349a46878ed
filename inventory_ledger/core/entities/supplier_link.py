"""Supplier catalog link entity."""

from datetime import datetime

from pydantic import BaseModel


class SupplierCatalogLink(BaseModel):
    """Links a supplier catalog item to the store ingredient it restocks."""

    catalog_item_id: str
    store_ingredient_id: str
    preferred: bool = False
    last_purchase_price: int | None = None
    last_purchased_at: datetime | None = None
