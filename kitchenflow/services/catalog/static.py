"""
Static Catalog Service

In-memory menu used by the fulfillment engine. Ships with the branch's
built-in menu and can be replaced by a JSON file (CATALOG_FILE) exported
from the menu administration tool.

JSON format (a list of entries):
    [
        {
            "id": "D-00001",
            "name": "Family Deal",
            "price": "2599",
            "station_id": null,
            "deal_components": [{"catalog_id": "I-P-001", "quantity": 2}],
            "variants": [],
            "addon_ids": [],
            "category": "Deals"
        }
    ]

Author: Khalil Bannouri
Version: 1.0.0
"""

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable, Optional

from kitchenflow.services.catalog.base import (
    BaseCatalogService,
    CatalogEntry,
    DealComponent,
    Variant,
)

logger = logging.getLogger(__name__)


PIZZA_VARIANTS = (
    Variant(id="V-SMALL", name="Small", price=Decimal("550")),
    Variant(id="V-REGULAR", name="Regular", price=Decimal("1050")),
    Variant(id="V-LARGE", name="Large", price=Decimal("1450")),
)
PIZZA_ADDONS = ("A-00001", "A-00002", "A-00003", "A-00004")
SIDE_ADDONS = ("A-00005", "A-00006")

# Built-in menu (stations: pizza, pasta, fried, bar; None = counter item)
DEFAULT_MENU: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        id="I-P-001", name="Chicken Tikka Pizza", price=Decimal("1050"),
        station_id="pizza", variants=PIZZA_VARIANTS, addon_ids=PIZZA_ADDONS,
        category="Pizzas",
    ),
    CatalogEntry(
        id="I-P-002", name="Chicken Fajita Pizza", price=Decimal("1050"),
        station_id="pizza", variants=PIZZA_VARIANTS, addon_ids=PIZZA_ADDONS,
        category="Pizzas",
    ),
    CatalogEntry(
        id="I-PR-001", name="Kabab Bites Pizza Roll", price=Decimal("690"),
        station_id="pizza", category="Pizza Rolls",
    ),
    CatalogEntry(
        id="I-PA-001", name="Fettuccine Alfredo", price=Decimal("890"),
        station_id="pasta", category="Pastas",
    ),
    CatalogEntry(
        id="I-C-001", name="Hot Wings (6 pcs)", price=Decimal("590"),
        station_id="fried", addon_ids=SIDE_ADDONS, category="Chicken",
    ),
    CatalogEntry(
        id="I-S-001", name="Loaded Fries", price=Decimal("450"),
        station_id="fried", addon_ids=SIDE_ADDONS, category="Sides",
    ),
    CatalogEntry(
        id="I-DS-001", name="Lava Cake", price=Decimal("350"),
        station_id="bar", category="Desserts",
    ),
    CatalogEntry(
        id="I-DR-001", name="Soft Drink", price=Decimal("150"),
        station_id="bar", category="Drinks",
    ),
    CatalogEntry(
        id="I-X-001", name="Mineral Water", price=Decimal("100"),
        station_id=None, category="Counter",
    ),
    CatalogEntry(
        id="D-00001", name="Family Deal", price=Decimal("2599"),
        deal_components=(
            DealComponent("I-P-001", 2),
            DealComponent("I-DR-001", 1),
        ),
        category="Deals",
    ),
    CatalogEntry(
        id="D-00002", name="Lunch Box Deal", price=Decimal("1199"),
        deal_components=(
            DealComponent("I-PR-001", 1),
            DealComponent("I-S-001", 1),
            DealComponent("I-DR-001", 1),
        ),
        category="Deals",
    ),
)


class StaticCatalogService(BaseCatalogService):
    """
    Catalog backed by an in-memory dictionary.

    Example:
        >>> catalog = StaticCatalogService()
        >>> catalog.get_entry("D-00001").is_deal
        True
    """

    def __init__(self, entries: Optional[Iterable[CatalogEntry]] = None):
        self._entries = {entry.id: entry for entry in (entries or DEFAULT_MENU)}
        logger.info(f"StaticCatalogService initialized ({len(self._entries)} entries)")

    @property
    def provider_name(self) -> str:
        return "static"

    def get_entry(self, catalog_id: str) -> Optional[CatalogEntry]:
        return self._entries.get(catalog_id)

    def list_entries(self) -> list[CatalogEntry]:
        return list(self._entries.values())

    @classmethod
    def from_file(cls, path: str | Path) -> "StaticCatalogService":
        """Load the menu from a JSON export."""
        with open(path, encoding="utf-8") as fh:
            raw = json.load(fh)
        return cls(entries=[_parse_entry(item) for item in raw])


def _parse_entry(item: dict[str, Any]) -> CatalogEntry:
    return CatalogEntry(
        id=item["id"],
        name=item["name"],
        price=Decimal(str(item["price"])),
        station_id=item.get("station_id"),
        deal_components=tuple(
            DealComponent(c["catalog_id"], int(c.get("quantity", 1)))
            for c in item.get("deal_components") or []
        ),
        variants=tuple(
            Variant(v["id"], v["name"], Decimal(str(v["price"])))
            for v in item.get("variants") or []
        ),
        addon_ids=tuple(item.get("addon_ids") or []),
        category=item.get("category"),
    )
