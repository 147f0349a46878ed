"""Abstract interface for supplier catalog links."""

from abc import ABC, abstractmethod
from datetime import datetime

from inventory_ledger.core.entities.supplier_link import SupplierCatalogLink


class ISupplierCatalog(ABC):
    """Supplier catalog capability used as a completion side effect."""

    @abstractmethod
    async def record_last_purchase(
        self,
        catalog_item_id: str,
        store_ingredient_id: str,
        price: int,
        at: datetime,
    ) -> SupplierCatalogLink:
        """Remember the most recent completed purchase for the pair."""
        pass

    @abstractmethod
    async def ensure_link(
        self, catalog_item_id: str, store_ingredient_id: str
    ) -> SupplierCatalogLink:
        """Create the link if missing and return it."""
        pass

    @abstractmethod
    async def list_links_for_ingredient(
        self, store_ingredient_id: str
    ) -> list[SupplierCatalogLink]:
        """Catalog items that restock an ingredient, preferred first."""
        pass
