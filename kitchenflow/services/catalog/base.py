"""
Catalog Service Abstract Base Class

Defines the read-only lookup contract the decomposition engine consumes.
Menu administration lives elsewhere; the engine only ever resolves an
identifier to its price, kitchen station and deal composition.

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class DealComponent:
    """One bundled item of a deal: ``quantity`` units of ``catalog_id`` per deal."""
    catalog_id: str
    quantity: int = 1


@dataclass(frozen=True)
class Variant:
    """A priced alternative of a catalog item (size, crust, ...)."""
    id: str
    name: str
    price: Decimal


@dataclass(frozen=True)
class CatalogEntry:
    """
    Immutable menu entry as seen by the fulfillment engine.

    Attributes:
        id: Catalog identifier
        name: Display name copied onto every unit
        price: Base price (deal price for deals)
        station_id: Kitchen station preparing it; None means direct dispatch
        deal_components: Bundled items; non-empty makes this a deal container
        variants: Priced alternatives replacing the base price
        addon_ids: Addons that may be selected with this item (empty = any)
        category: Menu category, informational only
    """
    id: str
    name: str
    price: Decimal
    station_id: Optional[str] = None
    deal_components: tuple[DealComponent, ...] = ()
    variants: tuple[Variant, ...] = ()
    addon_ids: tuple[str, ...] = ()
    category: Optional[str] = None

    @property
    def is_deal(self) -> bool:
        return len(self.deal_components) > 0

    def find_variant(self, variant_id: str) -> Optional[Variant]:
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def accepts_addon(self, addon_id: str) -> bool:
        return not self.addon_ids or addon_id in self.addon_ids


class BaseCatalogService(ABC):
    """Abstract base class for catalog lookups."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the catalog provider name."""
        pass

    @abstractmethod
    def get_entry(self, catalog_id: str) -> Optional[CatalogEntry]:
        """
        Resolve a catalog identifier.

        Returns:
            CatalogEntry, or None when the identifier is unknown
        """
        pass

    @abstractmethod
    def list_entries(self) -> list[CatalogEntry]:
        """Return every entry of the menu."""
        pass

    def stations(self) -> list[str]:
        """Kitchen stations referenced by the menu, sorted."""
        return sorted({e.station_id for e in self.list_entries() if e.station_id})
