"""
Order Fulfillment Engine

Decomposition, per-unit tracking, status derivation and financial
adjustment. The service wiring them to storage and events lives in
``kitchenflow.services.fulfillment.service``.

Usage:
    from kitchenflow.services.fulfillment.service import get_fulfillment_service

    service = get_fulfillment_service()
    order = await service.dispatch_unit(order_id, unit_id)

Author: Khalil Bannouri
Version: 1.0.0
"""

from kitchenflow.services.fulfillment.aggregate import FulfillmentUnit, Order
from kitchenflow.services.fulfillment.decomposition import DecompositionEngine
from kitchenflow.services.fulfillment.locks import OrderLockRegistry

__all__ = [
    "Order",
    "FulfillmentUnit",
    "DecompositionEngine",
    "OrderLockRegistry",
]
