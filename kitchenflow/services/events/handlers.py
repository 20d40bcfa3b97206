"""
Order Event Handlers

Shared by the in-process publisher and the Celery worker so both
deliver an event to the same place.
"""

import logging
from typing import Any, Optional

from kitchenflow.services.events.base import ORDER_COMPLETED
from kitchenflow.services.settlement_ledger import SettlementLedger

logger = logging.getLogger(__name__)


def handle_order_event(event: dict[str, Any], ledger: SettlementLedger) -> Optional[dict[str, Any]]:
    """
    Apply an event dictionary (``OrderEvent.to_dict``).

    Returns:
        The ledger result for order.completed, None for events nobody consumes
    """
    if event.get("name") == ORDER_COMPLETED:
        return ledger.record_settlement(event)

    logger.debug(f"No handler for event {event.get('name')}")
    return None
