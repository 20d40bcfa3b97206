"""
Order Decomposition Engine

Expands purchased lines into fulfillment units:
    - One parent unit per line, priced from the variant (or base price)
      plus the selected addons
    - For deals, ``component quantity x line quantity`` component units,
      each routed to its own kitchen station and linked to the parent

Component units are flat and individually addressable so that a station
can mark one physical dish without knowing which deal it belongs to.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import uuid
from typing import Callable, Iterable, Optional

from kitchenflow.core.exceptions import CatalogInconsistency, PreconditionFailed
from kitchenflow.schemas import LineItemCreate
from kitchenflow.services.catalog.base import BaseCatalogService, CatalogEntry
from kitchenflow.services.fulfillment.aggregate import FulfillmentUnit
from kitchenflow.services.fulfillment.financials import ZERO, money

logger = logging.getLogger(__name__)


def _new_unit_id() -> str:
    return uuid.uuid4().hex


class DecompositionEngine:
    """
    Turns cart lines into the units an order is made of.

    Attributes:
        catalog: Read-only menu lookup
        id_factory: Produces unit ids (uuid4 hex by default)

    Example:
        >>> engine = DecompositionEngine(get_catalog_service())
        >>> units = engine.decompose(LineItemCreate(catalog_id="D-00001", quantity=2))
        >>> len(units)
        7
    """

    def __init__(
        self,
        catalog: BaseCatalogService,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.catalog = catalog
        self.id_factory = id_factory or _new_unit_id

    def decompose(self, line: LineItemCreate) -> list[FulfillmentUnit]:
        """
        Expand one purchased line.

        Raises:
            CatalogInconsistency: The purchased item itself is not in the catalog,
                or it is a deal none of whose components are
            PreconditionFailed: Unknown variant or an addon the item does not take
        """
        entry = self.catalog.get_entry(line.catalog_id)
        if entry is None:
            raise CatalogInconsistency(line.catalog_id)

        parent = self._parent_unit(entry, line)
        units = [parent]

        for component in entry.deal_components:
            component_entry = self.catalog.get_entry(component.catalog_id)
            if component_entry is None:
                # Menu drift must not block the order: drop the dish, keep the deal
                logger.warning(
                    f"Catalog inconsistency: deal {entry.id!r} references missing "
                    f"component {component.catalog_id!r}; component skipped"
                )
                continue

            for _ in range(component.quantity * line.quantity):
                units.append(self._component_unit(component_entry, entry, parent))

        if entry.is_deal and len(units) == 1:
            # A deal with no dish left would be billed without anything to serve
            raise CatalogInconsistency(
                entry.id,
                f"None of the components of deal {entry.id!r} are in the catalog",
            )

        return units

    def decompose_all(self, lines: Iterable[LineItemCreate]) -> list[FulfillmentUnit]:
        """
        Expand several lines, skipping the ones whose item is unknown.

        Raises:
            CatalogInconsistency: Not a single line could be resolved
        """
        units: list[FulfillmentUnit] = []
        missing: list[str] = []

        for line in lines:
            try:
                units.extend(self.decompose(line))
            except CatalogInconsistency as exc:
                logger.warning(f"Catalog inconsistency: {exc.message}; line skipped")
                missing.append(exc.catalog_id)

        if not units:
            raise CatalogInconsistency(
                missing[0] if missing else "",
                "None of the requested items could be found in the catalog",
            )
        return units

    # =========================================================================
    # UNIT BUILDERS
    # =========================================================================

    def _parent_unit(self, entry: CatalogEntry, line: LineItemCreate) -> FulfillmentUnit:
        base_price = entry.price
        variant = None
        if line.selected_variant is not None:
            found = entry.find_variant(line.selected_variant.id)
            if found is None:
                raise PreconditionFailed(
                    f"{entry.name} has no variant {line.selected_variant.id!r}",
                    code="unknown_variant",
                )
            base_price = found.price
            variant = {"id": found.id, "name": found.name, "price": str(found.price)}

        for addon in line.selected_addons:
            if not entry.accepts_addon(addon.id):
                raise PreconditionFailed(
                    f"Addon {addon.id!r} is not available for {entry.name}",
                    code="addon_not_allowed",
                )

        addon_price = sum((addon.price * addon.quantity for addon in line.selected_addons), ZERO)

        return FulfillmentUnit(
            unit_id=self.id_factory(),
            catalog_id=entry.id,
            name=entry.name,
            quantity=line.quantity,
            price=money(base_price + addon_price),
            base_price=money(base_price),
            station_id=entry.station_id,
            is_deal_container=entry.is_deal,
            # Nothing to cook: counter items start out prepared
            is_prepared=entry.station_id is None and not entry.is_deal,
            selected_addons=[addon.model_dump(mode="json") for addon in line.selected_addons],
            selected_variant=variant,
            instructions=line.instructions,
        )

    def _component_unit(
        self,
        entry: CatalogEntry,
        deal: CatalogEntry,
        parent: FulfillmentUnit,
    ) -> FulfillmentUnit:
        return FulfillmentUnit(
            unit_id=self.id_factory(),
            catalog_id=entry.id,
            name=entry.name,
            quantity=1,
            price=ZERO,
            base_price=ZERO,
            station_id=entry.station_id,
            is_component=True,
            parent_unit_id=parent.unit_id,
            deal_name=deal.name,
            is_prepared=entry.station_id is None,
        )
