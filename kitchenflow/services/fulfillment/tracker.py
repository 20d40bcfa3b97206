"""
Fulfillment Tracker

Per-unit kitchen state changes issued by the station terminals:
    - toggle_items_prepared: flip (not set) the prepared flag of units
    - dispatch_unit: hand a unit over to assembly, monotonic

Both validate every target before touching any of them.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from datetime import datetime
from typing import Sequence

from kitchenflow.core.exceptions import PreconditionFailed
from kitchenflow.services.fulfillment.aggregate import FulfillmentUnit, Order
from kitchenflow.services.fulfillment.status import ensure_mutable

logger = logging.getLogger(__name__)


def toggle_items_prepared(
    order: Order,
    unit_ids: Sequence[str],
    now: datetime,
) -> list[FulfillmentUnit]:
    """
    Flip ``is_prepared`` on exactly the given units.

    Calling it twice with the same ids restores the previous state.
    Repeated ids in one call count once.

    Raises:
        NotFound: A unit id is not part of the order
        PreconditionFailed: Closed order, counter unit (no station),
            deal container, or a unit that was already dispatched
    """
    ensure_mutable(order)

    targets = [order.get_unit(unit_id) for unit_id in dict.fromkeys(unit_ids)]
    if not targets:
        raise PreconditionFailed("No units given", code="empty_selection")

    for unit in targets:
        if not unit.is_physical:
            raise PreconditionFailed(
                f"{unit.name} is a deal; prepare its items instead",
                code="deal_container",
            )
        if unit.station_id is None:
            raise PreconditionFailed(
                f"{unit.name} has no kitchen station and is dispatched directly",
                code="no_station",
            )
        if unit.is_dispatched:
            raise PreconditionFailed(
                f"{unit.name} was already dispatched",
                code="already_dispatched",
            )

    for unit in targets:
        unit.is_prepared = not unit.is_prepared
        if unit.is_prepared:
            unit.prepared_at = now
        logger.info(
            f"Marked item '{unit.name}' as {'prepared' if unit.is_prepared else 'not prepared'} "
            f"for order #{order.order_number} (station={unit.station_id})"
        )

    return targets


def dispatch_unit(order: Order, unit_id: str, now: datetime) -> FulfillmentUnit:
    """
    Mark one unit dispatched. Dispatching an already dispatched unit is a no-op.

    Raises:
        NotFound: The unit is not part of the order
        PreconditionFailed: Closed order, deal container, or a station unit
            that is not prepared yet
    """
    ensure_mutable(order)
    unit = order.get_unit(unit_id)

    if not unit.is_physical:
        raise PreconditionFailed(
            f"{unit.name} is a deal; dispatch its items instead",
            code="deal_container",
        )
    if unit.is_dispatched:
        return unit
    if not unit.can_dispatch:
        raise PreconditionFailed(
            f"{unit.name} has not been prepared at the {unit.station_id} station yet",
            code="not_prepared",
        )

    unit.is_dispatched = True
    unit.dispatched_at = now
    logger.info(f"Dispatched item '{unit.name}' for order #{order.order_number}")
    return unit
