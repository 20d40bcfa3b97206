"""
Celery Event Publisher

Staging/production delivery: events with a consumer are queued to the
Celery worker over Redis. Events nobody consumes are only logged.

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging

from kitchenflow.services.events.base import ORDER_COMPLETED, BaseEventPublisher, OrderEvent

logger = logging.getLogger(__name__)


class CeleryEventPublisher(BaseEventPublisher):
    """Queues events as Celery tasks."""

    def __init__(self):
        logger.info("CeleryEventPublisher initialized")

    @property
    def provider_name(self) -> str:
        return "celery"

    async def publish(self, event: OrderEvent) -> None:
        if event.name != ORDER_COMPLETED:
            logger.debug(f"Event {event.name} for order #{event.order_number} not queued")
            return

        from kitchenflow.tasks import record_cashier_settlement

        # delay() talks to the broker synchronously
        result = await asyncio.to_thread(record_cashier_settlement.delay, event.to_dict())
        logger.info(f"Queued settlement of order #{event.order_number} (task {result.id})")
